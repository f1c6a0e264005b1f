# tests/test_system.py
import pytest
from httpx import AsyncClient, ASGITransport

from app.main import create_app
from app.db import crud
from app.db.database import init_db
from app.core import labels


@pytest.mark.asyncio
async def test_projects_are_grouped_by_name(client: AsyncClient, make_task):
    await make_task(project_id="p0", project_name="Website")
    await make_task(project_id="p1", project_name="Website")
    await make_task(project_name="  Mobile   App ")
    await make_task(project_id="orphan")
    await make_task()

    response = await client.get("/api/projects")

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": None,
        "data": [
            {"id": "auto_mobile_app", "name": "Mobile   App"},
            {"id": "p1", "name": "Website"},
        ],
    }


@pytest.mark.asyncio
async def test_both_project_endpoints_agree(client: AsyncClient, make_task):
    await make_task(project_id="p9", project_name="Backend")
    await make_task(project_name="Design")

    unified = await client.get("/api/projects")
    nested = await client.get("/api/tasks/projects")

    assert nested.status_code == 200
    assert nested.json() == unified.json()


@pytest.mark.asyncio
async def test_status_options(client: AsyncClient):
    response = await client.get("/api/tasks/options/status")

    assert response.status_code == 200
    options = response.json()["data"]
    assert [option["value"] for option in options] == [
        "todo", "in_progress", "pending_review", "approved", "rejected_revision", "cancelled"
    ]
    assert options[0] == {"value": "todo", "label": "待办", "color": "default"}
    assert options[3] == {"value": "approved", "label": "已验收", "color": "success"}


@pytest.mark.asyncio
async def test_priority_options(client: AsyncClient):
    response = await client.get("/api/tasks/options/priority")

    assert response.json()["data"] == [
        {"value": "low", "label": "低", "color": "green"},
        {"value": "medium", "label": "中", "color": "orange"},
        {"value": "high", "label": "高", "color": "red"},
    ]


@pytest.mark.asyncio
async def test_labels_follow_configured_locale(app, client: AsyncClient, make_task):
    app.state.settings = app.state.settings.model_copy(update={"LABEL_LOCALE": "en"})

    response = await client.get("/api/tasks/options/priority")
    assert response.json()["data"][0]["label"] == "Low"

    task = await make_task(status="in_progress")
    assert task["statusText"] == "In progress"
    assert task["priorityText"] == "Medium"


@pytest.mark.asyncio
async def test_stats(client: AsyncClient, make_task):
    await make_task(status="approved", priority="high")
    await make_task(status="approved", priority="low")
    await make_task(status="in_progress", priority="high")
    await make_task(status="todo")

    response = await client.get("/api/stats")

    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["total"] == 4
    assert stats["completed"] == 2
    assert stats["inProgress"] == 1
    assert stats["completionRate"] == 50
    assert set(stats["statusStats"]) == {
        "todo", "in_progress", "pending_review", "approved", "rejected_revision", "cancelled"
    }
    assert stats["statusStats"]["approved"] == {"count": 2, "label": "已验收", "color": "success"}
    assert stats["statusStats"]["cancelled"]["count"] == 0
    assert stats["priorityStats"]["high"]["count"] == 2
    assert stats["priorityStats"]["medium"]["count"] == 1
    assert stats["priorityStats"]["low"]["count"] == 1


@pytest.mark.asyncio
async def test_stats_completion_rate_rounds_half_up(client: AsyncClient, make_task):
    await make_task(status="approved")
    await make_task(status="approved")
    await make_task(status="todo")

    response = await client.get("/api/stats")

    assert response.json()["data"]["completionRate"] == 67


@pytest.mark.asyncio
async def test_stats_on_empty_board(client: AsyncClient):
    response = await client.get("/api/stats")

    stats = response.json()["data"]
    assert stats["total"] == 0
    assert stats["completionRate"] == 0


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient, make_task):
    await make_task()

    response = await client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["database"] == {"status": "connected", "taskCount": 1}
    assert body["uptime"] >= 0
    assert body["timestamp"]


@pytest.mark.asyncio
async def test_health_check_reports_database_failure(client: AsyncClient, monkeypatch):
    async def broken(*args, **kwargs):
        raise RuntimeError("connection refused")

    monkeypatch.setattr(crud.task, "count_tasks", broken)

    response = await client.get("/api/health")

    assert response.status_code == 500
    body = response.json()
    assert body["status"] == "ERROR"
    assert body["error"] == "Database unavailable"


@pytest.mark.asyncio
async def test_api_information(client: AsyncClient):
    response = await client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Taskboard API server"
    assert body["endpoints"]["tasks"] == "/api/tasks"
    assert body["environment"] == "testing"


@pytest.mark.asyncio
async def test_unknown_route_returns_404_envelope(client: AsyncClient):
    response = await client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Endpoint not found"}


@pytest.mark.asyncio
async def test_response_headers(client: AsyncClient):
    response = await client.get("/api/health")

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Trace-ID"]
    assert response.headers["X-Request-ID"] == response.headers["X-Trace-ID"]
    assert "Strict-Transport-Security" not in response.headers


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient):
    response = await client.options(
        "/api/tasks",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
        }
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient):
    await client.get("/api/tasks")

    response = await client.get("/metrics")

    assert response.status_code == 200
    assert "taskboard_http_requests_total" in response.text
    assert 'endpoint="/api/tasks"' in response.text


@pytest.mark.asyncio
async def test_unhandled_exception_returns_generic_500(app, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("labels exploded")

    monkeypatch.setattr(labels, "status_options", broken)

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.get("/api/tasks/options/status")

    assert response.status_code == 500
    assert response.json() == {
        "success": False,
        "message": "Internal server error",
        "error": "Internal server error",
    }


@pytest.mark.asyncio
async def test_rate_limit(test_settings):
    config = test_settings.model_copy(update={"RATE_LIMIT_ENABLED": True, "DEFAULT_RATE_LIMIT": "2/minute"})
    limited_app = create_app(config)
    await init_db(limited_app.state.engine)

    async with AsyncClient(transport=ASGITransport(app=limited_app), base_url="http://test") as ac:
        assert (await ac.get("/api/tasks")).status_code == 200
        assert (await ac.get("/api/tasks")).status_code == 200
        response = await ac.get("/api/tasks")

    await limited_app.state.engine.dispose()

    assert response.status_code == 429
    assert response.json()["success"] is False
    assert response.json()["message"].startswith("Rate limit exceeded")
    assert "Retry-After" in response.headers


@pytest.mark.asyncio
async def test_status_transitions_are_counted(client: AsyncClient, make_task):
    task = await make_task()
    await client.patch(f"/api/tasks/{task['id']}/status", json={"status": "in_progress"})

    response = await client.get("/metrics")

    assert 'taskboard_task_status_transitions_total{from_status="new",to_status="todo"}' in response.text
    assert 'taskboard_task_status_transitions_total{from_status="todo",to_status="in_progress"}' in response.text
