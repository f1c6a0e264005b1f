"""Prometheus metrics for HTTP traffic and task lifecycle changes"""
import time
from typing import Callable, Optional

from fastapi import Request
from prometheus_client import Counter, Histogram, Gauge
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match

HTTP_REQUESTS = Counter(
    'taskboard_http_requests_total',
    'HTTP requests by route template and status code',
    ['method', 'endpoint', 'status']
)

HTTP_LATENCY = Histogram(
    'taskboard_http_request_duration_seconds',
    'HTTP request latency by route template',
    ['method', 'endpoint'],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)
)

HTTP_IN_FLIGHT = Gauge(
    'taskboard_http_requests_active',
    'Requests currently being served'
)

STATUS_TRANSITIONS = Counter(
    'taskboard_task_status_transitions_total',
    'Task status changes, "new" as source for created tasks',
    ['from_status', 'to_status']
)

# Scrapes are not traffic
UNTRACKED_PATHS = frozenset({"/metrics"})


def record_status_transition(previous_status: Optional[str], next_status: str) -> None:
    if previous_status == next_status:
        return
    STATUS_TRANSITIONS.labels(from_status=previous_status or "new", to_status=next_status).inc()


def route_template(request: Request) -> str:
    """Path template such as /api/tasks/{task_id}, so task ids stay out of label values"""
    for route in request.app.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return "unmatched"


class MonitoringMiddleware(BaseHTTPMiddleware):
    """Count and time every request by method, route template and status"""

    async def dispatch(self, request: Request, call_next: Callable):
        if request.url.path in UNTRACKED_PATHS:
            return await call_next(request)

        endpoint = route_template(request)
        started = time.perf_counter()
        status_code = 500

        HTTP_IN_FLIGHT.inc()
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            HTTP_IN_FLIGHT.dec()
            HTTP_REQUESTS.labels(method=request.method, endpoint=endpoint, status=status_code).inc()
            HTTP_LATENCY.labels(method=request.method, endpoint=endpoint).observe(time.perf_counter() - started)
