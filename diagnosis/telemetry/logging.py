"""Structured JSON logging with trace context."""

import json
import logging
import sys

from opentelemetry import trace

from diagnosis.config import settings


class JsonTraceFormatter(logging.Formatter):
    """One JSON object per record, carrying the active span's trace and span ids."""

    def format(self, record: logging.LogRecord) -> str:
        ctx = trace.get_current_span().get_span_context()
        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "trace_id": format(ctx.trace_id, "032x") if ctx.is_valid else "0",
            "span_id": format(ctx.span_id, "016x") if ctx.is_valid else "0",
            "service": settings.service_name,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging(level: str | None = None, otlp_endpoint: str | None = None) -> logging.Logger:
    """Route the diagnosis loggers to stdout as JSON, and to OTLP when an endpoint is given."""
    log_level = logging.getLevelName((level or settings.log_level).upper())

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(JsonTraceFormatter())

    logger = logging.getLogger("diagnosis")
    logger.setLevel(log_level)
    logger.handlers = [stream_handler]

    if otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
        from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
        from opentelemetry.sdk._logs.export import BatchLogRecordProcessor

        from diagnosis.telemetry.tracing import service_resource

        log_provider = LoggerProvider(resource=service_resource())
        otlp_exporter = OTLPLogExporter(endpoint=otlp_endpoint, insecure=True)
        log_provider.add_log_record_processor(BatchLogRecordProcessor(otlp_exporter))
        logger.addHandler(LoggingHandler(level=log_level, logger_provider=log_provider))

    uvicorn_handler = logging.StreamHandler(sys.stdout)
    uvicorn_handler.setFormatter(JsonTraceFormatter())
    logging.getLogger("uvicorn.access").handlers = [uvicorn_handler]
    logging.getLogger("uvicorn.error").handlers = [uvicorn_handler]

    return logger
