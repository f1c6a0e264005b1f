# app/exceptions/handlers.py
from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from app.core import tracing
from app.exceptions.tasks import TaskValidationError, StoreError

REDACTED_ERROR = "Internal server error"


def _is_development(request: Request) -> bool:
    config = getattr(request.app.state, "settings", None)
    return bool(config and config.is_development)


def error_envelope(message: str, **extra) -> dict:
    """Uniform failure body: {success: false, message, ...}"""
    body = {"success": False, "message": message}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def _format_validation_errors(errors) -> list:
    formatted = []
    for error in errors:
        # Body/query/path prefix carries no meaning for clients
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        message = str(error.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        formatted.append({"field": ".".join(location) or None, "message": message})
    return formatted


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    client_ip = get_remote_address(request)

    if isinstance(exc, StoreError):
        cause = exc.cause or exc
        tracing.error(
            f"HTTP {exc.status_code}: {exc.detail}",
            url=str(request.url),
            ip=client_ip,
            error_type=type(cause).__name__,
            error=str(cause)
        )
        content = error_envelope(
            exc.detail,
            error=str(cause) if _is_development(request) else REDACTED_ERROR
        )
    else:
        tracing.warning(f"HTTP {exc.status_code}: {exc.detail}", url=str(request.url), ip=client_ip)
        errors = exc.errors if isinstance(exc, TaskValidationError) else None
        content = error_envelope(str(exc.detail), errors=errors)

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, 'headers', None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = _format_validation_errors(exc.errors())

    tracing.warning(
        f"Validation error: {len(errors)} errors",
        url=str(request.url),
        ip=get_remote_address(request),
        errors=errors
    )

    message = errors[0]["message"] if errors else "Validation failed"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_envelope(message, errors=errors)
    )


async def starlette_http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    tracing.warning(
        f"HTTP {exc.status_code}: {exc.detail}",
        url=str(request.url),
        ip=get_remote_address(request)
    )

    message = "Endpoint not found" if exc.status_code == status.HTTP_404_NOT_FOUND else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(message),
        headers=getattr(exc, 'headers', None)
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    tracing.warning(
        f"Rate limit exceeded: {exc.detail}",
        ip=get_remote_address(request),
        path=request.url.path
    )
    response = JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=error_envelope(f"Rate limit exceeded: {exc.detail}")
    )
    limiter = getattr(request.app.state, "limiter", None)
    view_rate_limit = getattr(request.state, "view_rate_limit", None)
    if limiter is not None and view_rate_limit is not None:
        response = limiter._inject_headers(response, view_rate_limit)
    return response


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    tracing.error(
        f"UNHANDLED EXCEPTION: {str(exc)}",
        url=str(request.url),
        ip=get_remote_address(request),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_envelope(
            REDACTED_ERROR,
            error=str(exc) if _is_development(request) else REDACTED_ERROR
        )
    )
