"""Application configuration using Pydantic Settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings with environment variable support.

    Only the service layer reads these; the query compiler is configuration-free.
    """

    # Service configuration
    service_name: str = "logql-compiler"
    service_version: str = "0.1.0"
    log_level: str = "INFO"

    # Loki configuration
    loki_url: str = "http://loki.logging.svc.cluster.local:3100"
    loki_timeout: int = 10

    # Query defaults
    tag_values_limit: int = 1000
    line_limit: int = 1000

    # Observability configuration
    otel_enabled: bool = False
    otel_endpoint: str = "http://localhost:4317"
    deployment_environment: str = "local"

    model_config = SettingsConfigDict(
        env_prefix="LOGQL_COMPILER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# Global settings instance
settings = Settings()
