"""
Pytest configuration and fixtures for Taskboard API tests
"""
import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession

from app.main import create_app
from app.db.database import init_db
from app.core.config import Settings

# Every test gets its own in-memory database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        DATABASE_URL=TEST_DATABASE_URL,
        ENVIRONMENT="testing",
        LOG_LEVEL="WARNING",
        RATE_LIMIT_ENABLED=False,
        ENABLE_OTEL_EXPORTER=False,
        LABEL_LOCALE="zh-CN",
    )


@pytest.fixture
async def app(test_settings: Settings) -> AsyncGenerator[FastAPI, None]:
    """Application with its tables created (ASGITransport does not run the lifespan)"""
    application = create_app(test_settings)
    await init_db(application.state.engine)

    yield application

    await application.state.engine.dispose()


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session(app: FastAPI) -> AsyncGenerator[AsyncSession, None]:
    """Session on the same engine the application uses"""
    async with app.state.session_factory() as session:
        yield session


@pytest.fixture
def make_task(client: AsyncClient):
    """Create a task through the API and return its JSON representation"""

    async def _make_task(**fields):
        payload = {"title": "Test task"}
        payload.update(fields)
        response = await client.post("/api/tasks", json=payload)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _make_task
