# app/middleware/tracing.py - Per-request trace id, span and access log
import time
from typing import Callable

from fastapi import Request
from loguru import logger
from opentelemetry import trace
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.tracing import generate_trace_id, generate_span_id, set_trace_context, get_current_trace_span_ids

TRACE_HEADERS = ("X-Trace-ID", "X-Request-ID")

# Polled by probes and scrapers, logged at debug only
QUIET_PATHS = frozenset({"/api/health", "/metrics"})


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Bind a trace id to each request and write one access log line per response.

    The id comes from the OpenTelemetry span when a tracer provider is
    configured, otherwise it is generated locally. It is stored on
    ``request.state.trace_id`` and returned in the trace headers.
    """

    def __init__(self, app, quiet_paths=QUIET_PATHS):
        super().__init__(app)
        self.quiet_paths = frozenset(quiet_paths)

    async def dispatch(self, request: Request, call_next: Callable):
        started = time.perf_counter()
        client_ip = get_remote_address(request)
        path = request.url.path
        tracer = trace.get_tracer(__name__)

        with tracer.start_as_current_span(
            f"{request.method} {path}",
            attributes={"http.method": request.method, "http.target": path, "http.client_ip": client_ip}
        ) as span:
            if span.get_span_context().is_valid:
                trace_id, span_id = get_current_trace_span_ids()
            else:
                trace_id, span_id = generate_trace_id(), generate_span_id()
            set_trace_context(trace_id, span_id)
            request.state.trace_id = trace_id

            access_log = logger.bind(trace_id=trace_id, span_id=span_id, ip=client_ip)

            try:
                response = await call_next(request)
            except Exception as e:
                span.record_exception(e)
                span.set_attribute("error", True)
                access_log.error(f"{request.method} {path} failed after {time.perf_counter() - started:.3f}s: {e}")
                raise

            elapsed = time.perf_counter() - started
            span.set_attribute("http.status_code", response.status_code)

            for header in TRACE_HEADERS:
                response.headers[header] = trace_id

            if path in self.quiet_paths:
                level = "DEBUG"
            elif response.status_code >= 500:
                level = "ERROR"
            elif response.status_code >= 400:
                level = "WARNING"
            else:
                level = "INFO"
            access_log.log(level, f"{request.method} {path} -> {response.status_code} in {elapsed:.3f}s")

            return response
