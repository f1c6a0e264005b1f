from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from app.core.config import Settings

# The browser client reads trace ids and rate limit state from these
EXPOSED_HEADERS = [
    "X-Request-ID",
    "X-Trace-ID",
    "X-RateLimit-Limit",
    "X-RateLimit-Remaining",
    "X-RateLimit-Reset",
    "Retry-After",
]

TASK_API_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def setup_cors_middleware(app: FastAPI, config: Settings) -> None:
    """Allow the task board client's origins to call the API"""
    allowed_origins = config.cors_origins_list

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=False,
        allow_methods=TASK_API_METHODS,
        allow_headers=["Accept", "Accept-Language", "Content-Type", "X-Request-ID", "X-Trace-ID"],
        expose_headers=EXPOSED_HEADERS,
        max_age=600,
    )

    logger.info(f"CORS allowed origins: {', '.join(allowed_origins) or 'none'}")
