import logging
from pathlib import Path
from fastapi import HTTPException, Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from app.core import tracing as logger
from app.core.config import Settings

# Configure logging for SQLAlchemy (ORM logs only)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

# Declarative base class
Base = declarative_base()


def build_engine(config: Settings) -> AsyncEngine:
    """Create the async engine described by DATABASE_URL."""
    url = make_url(config.DATABASE_URL)

    if url.get_backend_name() == "sqlite":
        database = url.database or ""
        if database in ("", ":memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            return create_async_engine(
                url,
                echo=False,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        return create_async_engine(url, echo=False, connect_args={"check_same_thread": False})

    return create_async_engine(
        url,
        echo=False,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        pool_recycle=300,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False
    )


async def init_db(engine: AsyncEngine):
    """Create tables that do not exist yet."""
    # Registers Task on Base.metadata
    from app.db import models  # noqa: F401

    if engine.url.get_backend_name() == "sqlite" and engine.url.database not in (None, "", ":memory:"):
        Path(engine.url.database).parent.mkdir(parents=True, exist_ok=True)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables initialized successfully")
    except Exception as e:
        logger.error("Database initialization failed", error=str(e), type=type(e).__name__)
        raise


async def get_db(request: Request):
    """Async session dependency bound to the application's session factory."""
    session_factory: async_sessionmaker = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
        except Exception as e:
            # 4xx responses are routine here, only unexpected failures are logged
            if not isinstance(e, HTTPException) or e.status_code >= 500:
                logger.error(
                    "Database session error",
                    error=str(getattr(e, "detail", e)),
                    type=type(e).__name__
                )
            await session.rollback()
            raise
