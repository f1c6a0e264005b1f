from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable, Dict

BASE_HEADERS: Dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

HSTS_HEADER = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Security headers on every response; task payloads under /api are never cached
    """

    def __init__(self, app, enable_hsts: bool = False, api_prefix: str = "/api"):
        super().__init__(app)
        self.headers = dict(BASE_HEADERS)
        if enable_hsts:
            self.headers["Strict-Transport-Security"] = HSTS_HEADER
        self.api_prefix = api_prefix

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers.update(self.headers)
        if request.url.path.startswith(self.api_prefix):
            response.headers.setdefault("Cache-Control", "no-store")

        return response
