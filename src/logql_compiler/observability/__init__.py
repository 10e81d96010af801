"""OpenTelemetry tracing setup."""

import logging

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import (
    DEPLOYMENT_ENVIRONMENT,
    SERVICE_NAME,
    SERVICE_VERSION,
    Resource,
)
from opentelemetry.sdk.trace import ReadableSpan, Span, SpanProcessor, TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = logging.getLogger(__name__)


class FilterSpanProcessor(SpanProcessor):
    """
    Drops noisy spans before they reach the exporter.

    FastAPI instrumentation emits one "http send" span per response chunk.
    Spans are still created (the name is only known at the end) but never
    exported.
    """

    def __init__(self, next_processor: SpanProcessor):
        self.next_processor = next_processor

    def on_start(self, span: Span, parent_context: Context | None = None) -> None:
        self.next_processor.on_start(span, parent_context)

    def on_end(self, span: ReadableSpan) -> None:
        if "http send" in span.name.lower():
            return
        self.next_processor.on_end(span)

    def shutdown(self) -> None:
        self.next_processor.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self.next_processor.force_flush(timeout_millis)


def setup_telemetry(
    app,
    service_name: str = "logql-compiler",
    service_version: str = "0.1.0",
    endpoint: str = "http://localhost:4317",
    environment: str = "local",
    enabled: bool = True,
):
    """
    Initialize OpenTelemetry instrumentation for the FastAPI application.

    - Exports traces over OTLP gRPC
    - Instruments FastAPI requests and outgoing httpx calls to Loki

    Failures are logged and never stop the service from starting.
    """
    if not enabled:
        logger.info("OpenTelemetry disabled")
        return

    try:
        resource = Resource(
            attributes={
                SERVICE_NAME: service_name,
                SERVICE_VERSION: service_version,
                DEPLOYMENT_ENVIRONMENT: environment,
                "service.namespace": "logql-compiler",
            }
        )
        provider = TracerProvider(resource=resource)

        otlp_exporter = OTLPSpanExporter(endpoint=endpoint, insecure=True)
        provider.add_span_processor(
            FilterSpanProcessor(BatchSpanProcessor(otlp_exporter))
        )
        trace.set_tracer_provider(provider)

        FastAPIInstrumentor.instrument_app(app, excluded_urls="/health")
        HTTPXClientInstrumentor().instrument()
    except Exception as e:
        logger.error(f"✗ OpenTelemetry initialization failed: {e}")
    else:
        logger.info(f"✓ OpenTelemetry initialized: {service_name} → {endpoint}")


def get_tracer(name: str):
    """
    Get a tracer for manual spans.

    Example:
        tracer = get_tracer(__name__)
        with tracer.start_as_current_span("compile_query"):
            ...
    """
    return trace.get_tracer(name)
