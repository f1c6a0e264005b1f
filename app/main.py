# app/main.py - Application factory and ASGI entry point
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
import time

# Core imports
from app.core.config import Settings, settings as default_settings
from app.core import tracing
from app.db.database import build_engine, build_session_factory, init_db

# Import API routes
from app.api.router import api_router

# Import middleware
from app.middleware.security import SecurityHeadersMiddleware
from app.middleware.cors import setup_cors_middleware
from app.middleware.monitoring import MonitoringMiddleware
from app.middleware.tracing import TracingMiddleware

# Import exception handlers
from app.exceptions.handlers import (
    http_exception_handler,
    validation_exception_handler,
    global_exception_handler,
    starlette_http_exception_handler,
    rate_limit_exceeded_handler
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Create tables on startup, dispose of the connection pool on shutdown
    """
    config: Settings = app.state.settings
    tracing.info("Taskboard API startup initiated")

    await init_db(app.state.engine)

    tracing.info(f"Environment: {config.ENVIRONMENT}")
    tracing.info(f"Database: {app.state.engine.url.render_as_string(hide_password=True)}")
    tracing.info(f"Rate Limiting: {'Enabled' if config.RATE_LIMIT_ENABLED else 'Disabled'}")
    tracing.info("Taskboard API startup complete")

    yield

    tracing.info("Taskboard API shutdown initiated")
    await app.state.engine.dispose()
    tracing.info("Taskboard API shutdown complete")


def create_app(config: Optional[Settings] = None) -> FastAPI:
    """Build the application around its own engine and session factory."""
    config = config or default_settings
    development = config.is_development

    app = FastAPI(
        title="Taskboard API",
        description="Task tracking API: tasks, status lifecycle, filtering and statistics",
        version=tracing.VERSION,
        lifespan=lifespan,
        docs_url="/docs" if development else None,
        redoc_url="/redoc" if development else None,
        openapi_url="/openapi.json" if development else None
    )

    engine = build_engine(config)
    app.state.settings = config
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)
    app.state.started_at = time.monotonic()

    # =========================================================================
    # TRACING / LOGGING
    # =========================================================================

    tracing_enabled = tracing.setup_tracing(app, engine, config)
    app.state.tracing_enabled = tracing_enabled

    # =========================================================================
    # MIDDLEWARE SETUP (last added runs first)
    # =========================================================================

    limiter = Limiter(
        key_func=get_remote_address,
        default_limits=[config.DEFAULT_RATE_LIMIT],
        enabled=config.RATE_LIMIT_ENABLED,
        headers_enabled=True
    )
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=config.ENVIRONMENT == "production")
    setup_cors_middleware(app, config)
    app.add_middleware(MonitoringMiddleware)
    app.add_middleware(TracingMiddleware)

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, starlette_http_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # =========================================================================
    # ROUTES
    # =========================================================================

    app.include_router(api_router, prefix="/api")

    @app.get("/", tags=["System"])
    async def api_information():
        """API information endpoint"""
        return {
            "message": "Taskboard API server",
            "version": tracing.VERSION,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": config.ENVIRONMENT,
            "database": engine.dialect.name,
            "trace_id": tracing.get_current_trace_id(),
            "endpoints": {
                "health": "/api/health",
                "tasks": "/api/tasks",
                "stats": "/api/stats",
                "projects": "/api/projects",
                "metrics": "/metrics",
                "docs": "/docs" if development else None
            }
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    tracing.info("Taskboard API initialized", environment=config.ENVIRONMENT)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=default_settings.HOST, port=default_settings.PORT)
