"""
Logging setup for commonmodel, with optional OpenTelemetry OTLP export.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from opentelemetry import _logs, trace
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import (
    OTLPLogExporter as GrpcOTLPLogExporter,
)
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
    OTLPSpanExporter as GrpcOTLPSpanExporter,
)
from opentelemetry.exporter.otlp.proto.http._log_exporter import (
    OTLPLogExporter as HttpOTLPLogExporter,
)
from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
    OTLPSpanExporter as HttpOTLPSpanExporter,
)
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from commonmodel.config import settings

_initialized = False


def get_root_logger() -> logging.Logger:
    """Return the process-wide root logger."""
    return logging.getLogger("")


def _formatter() -> logging.Formatter:
    return logging.Formatter(
        fmt="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _file_handler(log_dir: str, log_file: str, formatter: logging.Formatter) -> RotatingFileHandler:
    os.makedirs(log_dir, exist_ok=True)
    handler = RotatingFileHandler(
        os.path.join(log_dir, log_file),
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding="utf-8",
    )
    handler.setFormatter(formatter)
    return handler


def _otel_disabled() -> bool:
    # Export is opt-in for a library: unset means disabled.
    return os.getenv("OTEL_SDK_DISABLED", "true").strip().lower() in {"1", "true", "yes", "on"}


def _http_protocol(signal: str) -> bool:
    value = os.getenv(f"OTEL_EXPORTER_OTLP_{signal}_PROTOCOL") or os.getenv(
        "OTEL_EXPORTER_OTLP_PROTOCOL", "grpc"
    )
    return value.strip().lower() in {"http/protobuf", "http"}


def _configure_otel(service_name: str, level: str | int) -> logging.Handler:
    resource = Resource.create({"service.name": service_name})

    tracer_provider = TracerProvider(resource=resource)
    span_exporter = HttpOTLPSpanExporter() if _http_protocol("TRACES") else GrpcOTLPSpanExporter()
    tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))
    trace.set_tracer_provider(tracer_provider)

    logger_provider = LoggerProvider(resource=resource)
    log_exporter = HttpOTLPLogExporter() if _http_protocol("LOGS") else GrpcOTLPLogExporter()
    logger_provider.add_log_record_processor(BatchLogRecordProcessor(log_exporter))
    _logs.set_logger_provider(logger_provider)

    return LoggingHandler(level=level, logger_provider=logger_provider)


def setup_logging(
    *,
    service_name: Optional[str] = None,
    level: str | int | None = None,
    log_dir: Optional[str] = None,
    log_file: Optional[str] = None,
    with_console: bool = True,
) -> logging.Logger:
    """
    Configure the root logger from settings.
    Safe to call multiple times; handlers are only added once.
    """
    global _initialized

    level = level or settings.LOG_LEVEL.upper()
    root = get_root_logger()
    root.setLevel(level)

    if _initialized:
        return root
    _initialized = True

    formatter = _formatter()
    handlers: list[logging.Handler] = []
    if with_console:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        handlers.append(console)

    if _otel_disabled():
        handlers.append(
            _file_handler(log_dir or settings.LOG_DIR, log_file or settings.LOG_FILE, formatter)
        )
    else:
        handlers.insert(0, _configure_otel(service_name or settings.OTEL_SERVICE_NAME, level))

    existing = set(root.handlers)
    for handler in handlers:
        if handler not in existing:
            root.addHandler(handler)
    return root
