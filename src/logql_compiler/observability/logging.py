"""Structured JSON logging with OpenTelemetry trace context injection."""

import json
import logging
from typing import Any, TypedDict

from opentelemetry import trace


STANDARD_LOG_RECORD_ATTRS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "exc_info",
    "exc_text",
    "stack_info",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
}


class StructuredLog(TypedDict, total=False):
    timestamp: str
    level: str
    logger: str
    message: str

    trace_id: str
    span_id: str
    sampled: bool

    exception: str
    extra_fields: dict[str, Any]


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter that adds the active trace and span ids to every record.

    Extra fields passed as ``extra={"extra_fields": {...}}`` are emitted
    as-is, so compiled queries and Loki lookups can be correlated with the
    request trace in Grafana.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # no active span is normal outside a request; skip injection then
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            log_data["trace_id"] = format(span_context.trace_id, "032x")
            log_data["span_id"] = format(span_context.span_id, "016x")
            log_data["sampled"] = bool(span_context.trace_flags & 0x01)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in STANDARD_LOG_RECORD_ATTRS:
                log_data[key] = value

        structured_log: StructuredLog = log_data  # type: ignore[assignment]
        return json.dumps(structured_log, default=str)


def setup_logging(level: str = "INFO"):
    """
    Configure structured logging on the root logger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logger = logging.getLogger()
    logger.setLevel(level)

    # NOTE: this removes handlers added by other libraries too
    logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)

    # Silence noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Usage:
        logger = get_logger(__name__)
        logger.info("Compiled query", extra={"extra_fields": {"expr": expr}})
    """
    return logging.getLogger(name)
