# app/core/tracing.py - Trace context, structured logging and optional OpenTelemetry

import os
import socket
import traceback
import sys
import json
import random
from datetime import datetime, timezone
from typing import Optional
from loguru import logger
from contextvars import ContextVar

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

from app.core.config import Settings, settings as default_settings

SERVICE = "taskboard-api"
VERSION = "1.0.0"

# Context variables for manual trace propagation
_trace_id_context: ContextVar[str] = ContextVar('trace_id', default='no-trace')
_span_id_context: ContextVar[str] = ContextVar('span_id', default='no-span')

_tracer_provider: Optional[TracerProvider] = None


def generate_trace_id() -> str:
    """Generate a 128-bit trace ID as 32-character hex string"""
    return f"{random.getrandbits(128):032x}"


def generate_span_id() -> str:
    """Generate a 64-bit span ID as 16-character hex string"""
    return f"{random.getrandbits(64):016x}"


def setup_tracing(app, db_engine=None, config: Optional[Settings] = None) -> bool:
    """
    Configure logging and, when enabled, the OpenTelemetry tracer provider.

    Local trace IDs are always available through the request middleware, so
    a disabled or failing exporter never leaves requests without a trace id.
    """
    global _tracer_provider
    config = config or default_settings

    setup_structured_logging(config)

    setup_logger = logger.bind(trace_id=generate_trace_id(), span_id=generate_span_id())

    if not config.ENABLE_OTEL_EXPORTER:
        setup_logger.info("OpenTelemetry disabled in config - using local trace IDs only")
        return False

    setup_logger.info("Setting up OpenTelemetry tracing...")

    if _tracer_provider is None:
        resource = Resource.create({
            SERVICE_NAME: SERVICE,
            "service.version": VERSION,
            "service.environment": config.ENVIRONMENT,
        })
        _tracer_provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(_tracer_provider)

        if config.ENABLE_OTEL_CONSOLE_EXPORT:
            _tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
            setup_logger.info("Console span exporter enabled")

    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=_tracer_provider,
        excluded_urls="/api/health,/metrics,/docs,/redoc,/openapi.json"
    )
    setup_logger.info("FastAPI instrumented")

    if db_engine is not None:
        instrument_database(db_engine)

    return True


def instrument_database(db_engine) -> bool:
    """Add SQLAlchemy span instrumentation to an (async) engine"""
    if _tracer_provider is None:
        return False

    engine_to_instrument = getattr(db_engine, 'sync_engine', db_engine)
    SQLAlchemyInstrumentor().instrument(
        engine=engine_to_instrument,
        tracer_provider=_tracer_provider,
    )
    info("SQLAlchemy instrumented")
    return True


def format_stack_trace(exception_info) -> Optional[str]:
    """Format a loguru exception record for logging"""
    if not exception_info or not exception_info.traceback:
        return None
    return ''.join(traceback.format_exception(
        exception_info.type,
        exception_info.value,
        exception_info.traceback
    ))


def _inject_trace_context(record):
    """Runs in the logging call's context, before the record is queued"""
    record["extra"].setdefault("trace_id", _trace_id_context.get())
    record["extra"].setdefault("span_id", _span_id_context.get())


def setup_structured_logging(config: Optional[Settings] = None):
    """Replace loguru's default sink with a trace-aware text or JSON sink"""
    config = config or default_settings

    logger.remove()
    logger.configure(patcher=_inject_trace_context)

    hostname = socket.gethostname()
    pid = os.getpid()
    environment = config.ENVIRONMENT

    if config.should_use_json_logging:
        def json_sink(message):
            record = message.record
            extra = record["extra"]

            trace_id = extra.get("trace_id") or _trace_id_context.get()
            span_id = extra.get("span_id") or _span_id_context.get()

            log_entry = {
                "@timestamp": datetime.now(timezone.utc).isoformat(),
                "level": record["level"].name,
                "message": record["message"],
                "service": {
                    "name": SERVICE,
                    "version": VERSION,
                    "environment": environment,
                },
                "host": {"hostname": hostname},
                "process": {"pid": pid},
                "log": {
                    "origin": {
                        "file": {
                            "name": record["file"].name,
                            "line": record["line"],
                        },
                        "function": record["function"]
                    },
                    "logger": record["name"]
                },
                "trace": {
                    "id": trace_id,
                    "span_id": span_id
                },
            }

            custom = {k: v for k, v in extra.items()
                      if k not in ("trace_id", "span_id") and not k.startswith("_")}
            if custom:
                log_entry["custom"] = custom

            if record["exception"]:
                log_entry["error"] = {
                    "type": record["exception"].type.__name__ if record["exception"].type else "UnknownError",
                    "message": str(record["exception"].value),
                    "stack_trace": format_stack_trace(record["exception"]),
                }

            sys.stderr.write(json.dumps(log_entry, ensure_ascii=False, default=str) + "\n")
            sys.stderr.flush()

        logger.add(json_sink, level=config.LOG_LEVEL, enqueue=True, catch=True)
    else:
        def format_with_trace(record):
            trace_id = record["extra"].get("trace_id") or _trace_id_context.get()
            trace_info = f" [trace:{trace_id[:8]}]" if trace_id != "no-trace" else ""
            return (
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
                "<cyan>{name}:{function}:{line}</cyan>" + trace_info + " - <level>{message}</level>\n{exception}"
            )

        logger.add(
            sys.stderr,
            format=format_with_trace,
            level=config.LOG_LEVEL,
            colorize=True,
            enqueue=True,
            catch=True
        )


def get_current_trace_span_ids() -> tuple[str, str]:
    """Return the trace/span ids of the current request, reading OTel first"""
    span_context = trace.get_current_span().get_span_context()
    if span_context.is_valid:
        return f"{span_context.trace_id:032x}", f"{span_context.span_id:016x}"

    trace_id = _trace_id_context.get()
    span_id = _span_id_context.get()
    if trace_id != "no-trace":
        return trace_id, span_id

    trace_id, span_id = generate_trace_id(), generate_span_id()
    set_trace_context(trace_id, span_id)
    return trace_id, span_id


def set_trace_context(trace_id: str, span_id: str):
    """Manually set trace context - useful for async operations"""
    _trace_id_context.set(trace_id)
    _span_id_context.set(span_id)


def get_current_trace_id() -> str:
    trace_id, _ = get_current_trace_span_ids()
    return trace_id


def log_with_trace(level: str, message: str, **kwargs):
    """Log through loguru with the current trace context bound"""
    trace_id, span_id = get_current_trace_span_ids()
    bound = logger.opt(depth=2).bind(trace_id=trace_id, span_id=span_id, **kwargs)
    getattr(bound, level.lower())(message)


# Convenience functions
def info(message: str, **kwargs):
    log_with_trace("info", message, **kwargs)


def debug(message: str, **kwargs):
    log_with_trace("debug", message, **kwargs)


def warning(message: str, **kwargs):
    log_with_trace("warning", message, **kwargs)


def error(message: str, **kwargs):
    log_with_trace("error", message, **kwargs)


__all__ = [
    'setup_tracing', 'setup_structured_logging', 'get_current_trace_span_ids', 'get_current_trace_id',
    'set_trace_context', 'generate_trace_id', 'generate_span_id',
    'log_with_trace', 'info', 'debug', 'warning', 'error'
]
