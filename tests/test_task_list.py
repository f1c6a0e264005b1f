# tests/test_task_list.py
import pytest
from httpx import AsyncClient


@pytest.fixture
async def seeded_tasks(make_task):
    """A small board covering every filterable field"""
    return [
        await make_task(title="Write docs", status="todo", priority="low",
                        assignee="alice", project_id="p1", project_name="Website"),
        await make_task(title="Fix login bug", status="in_progress", priority="high",
                        assignee="bob", description="users see the doc page", project_id="p2"),
        await make_task(title="Release notes", status="approved", priority="medium",
                        assignee="alice smith", tags="doc,release", project_id="p1"),
        await make_task(title="Plan sprint", status="cancelled", priority="high"),
    ]


def _titles(response) -> list:
    return [task["title"] for task in response.json()["data"]]


@pytest.mark.asyncio
async def test_list_defaults(client: AsyncClient, seeded_tasks):
    response = await client.get("/api/tasks")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["pagination"] == {
        "total": 4,
        "page": 1,
        "limit": 10,
        "totalPages": 1,
        "hasNext": False,
        "hasPrev": False,
    }
    assert body["filters"] == {
        "status": None,
        "priority": None,
        "project_id": None,
        "assignee": None,
        "search": None,
        "sortBy": "created_at",
        "sortOrder": "DESC",
    }
    # Newest first, ids break created_at ties
    assert [task["id"] for task in body["data"]] == [task["id"] for task in reversed(seeded_tasks)]
    assert all("statusText" in task and "priorityText" in task for task in body["data"])


@pytest.mark.asyncio
async def test_list_empty_board(client: AsyncClient):
    response = await client.get("/api/tasks")

    body = response.json()
    assert body["data"] == []
    assert body["pagination"]["total"] == 0
    assert body["pagination"]["totalPages"] == 0
    assert body["pagination"]["hasNext"] is False


@pytest.mark.asyncio
@pytest.mark.parametrize("params", [
    [("status", "in_progress"), ("status", "todo")],
    [("status[]", "in_progress"), ("status[]", "todo")],
    [("status[0]", "in_progress"), ("status[1]", "todo")],
    [("status", "in_progress,todo")],
])
async def test_filter_by_status_set(client: AsyncClient, seeded_tasks, params):
    response = await client.get("/api/tasks", params=params)

    assert response.status_code == 200
    body = response.json()
    assert {task["status"] for task in body["data"]} == {"in_progress", "todo"}
    assert body["pagination"]["total"] == 2
    assert sorted(body["filters"]["status"]) == ["in_progress", "todo"]


@pytest.mark.asyncio
async def test_filter_by_single_priority(client: AsyncClient, seeded_tasks):
    response = await client.get("/api/tasks", params={"priority": "high"})

    assert sorted(_titles(response)) == ["Fix login bug", "Plan sprint"]


@pytest.mark.asyncio
async def test_filter_by_project_id(client: AsyncClient, seeded_tasks):
    response = await client.get("/api/tasks", params={"project_id": "p1"})

    assert sorted(_titles(response)) == ["Release notes", "Write docs"]


@pytest.mark.asyncio
async def test_filter_by_assignee_substring(client: AsyncClient, seeded_tasks):
    response = await client.get("/api/tasks", params={"assignee": "alice"})

    assert sorted(_titles(response)) == ["Release notes", "Write docs"]


@pytest.mark.asyncio
async def test_search_matches_title_description_or_tags(client: AsyncClient, seeded_tasks):
    response = await client.get("/api/tasks", params={"search": "doc"})

    assert sorted(_titles(response)) == ["Fix login bug", "Release notes", "Write docs"]
    assert response.json()["filters"]["search"] == "doc"


@pytest.mark.asyncio
async def test_filters_combine(client: AsyncClient, seeded_tasks):
    response = await client.get("/api/tasks", params={"search": "doc", "priority": "high"})

    assert _titles(response) == ["Fix login bug"]


@pytest.mark.asyncio
async def test_search_treats_wildcards_literally(client: AsyncClient, make_task):
    await make_task(title="Reach 100% coverage")
    await make_task(title="Reach 1000 users")

    response = await client.get("/api/tasks", params={"search": "0%"})
    assert _titles(response) == ["Reach 100% coverage"]

    response = await client.get("/api/tasks", params={"search": "10_0"})
    assert _titles(response) == []


@pytest.mark.asyncio
async def test_blank_filters_are_ignored(client: AsyncClient, seeded_tasks):
    response = await client.get("/api/tasks", params={"status": "", "search": "", "assignee": ""})

    assert response.status_code == 200
    assert response.json()["pagination"]["total"] == 4


@pytest.mark.asyncio
async def test_pagination_pages(client: AsyncClient, make_task):
    for i in range(12):
        await make_task(title=f"Task {i:02d}")

    response = await client.get("/api/tasks", params={"limit": 5, "page": 3})
    body = response.json()
    assert len(body["data"]) == 2
    assert body["pagination"] == {
        "total": 12,
        "page": 3,
        "limit": 5,
        "totalPages": 3,
        "hasNext": False,
        "hasPrev": True,
    }

    response = await client.get("/api/tasks", params={"limit": 5, "page": 2})
    assert response.json()["pagination"]["hasNext"] is True
    assert len(response.json()["data"]) == 5


@pytest.mark.asyncio
async def test_page_beyond_total_is_empty(client: AsyncClient, seeded_tasks):
    response = await client.get("/api/tasks", params={"page": 5, "limit": 2})

    body = response.json()
    assert response.status_code == 200
    assert body["data"] == []
    assert body["pagination"]["totalPages"] == 2
    assert body["pagination"]["hasNext"] is False
    assert body["pagination"]["hasPrev"] is True


@pytest.mark.asyncio
async def test_sort_by_title_ascending(client: AsyncClient, seeded_tasks):
    response = await client.get("/api/tasks", params={"sortBy": "title", "sortOrder": "asc"})

    assert response.status_code == 200
    assert _titles(response) == ["Fix login bug", "Plan sprint", "Release notes", "Write docs"]
    assert response.json()["filters"]["sortOrder"] == "ASC"


@pytest.mark.asyncio
async def test_sort_accepts_snake_case_names(client: AsyncClient, seeded_tasks):
    response = await client.get("/api/tasks", params={"sort_by": "title", "sort_order": "DESC"})

    assert _titles(response) == ["Write docs", "Release notes", "Plan sprint", "Fix login bug"]


@pytest.mark.asyncio
@pytest.mark.parametrize("params, field", [
    ({"sortBy": "password"}, "sortBy"),
    ({"sortBy": "title; DROP TABLE tasks"}, "sortBy"),
    ({"sortOrder": "sideways"}, "sortOrder"),
    ({"status": "someday"}, "status"),
    ({"priority": "urgent"}, "priority"),
    ({"page": "0"}, "page"),
    ({"page": "first"}, "page"),
    ({"limit": "101"}, "limit"),
    ({"limit": "0"}, "limit"),
])
async def test_invalid_query_is_rejected(client: AsyncClient, params, field):
    response = await client.get("/api/tasks", params=params)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert field in [error["field"] for error in body["errors"]]


@pytest.mark.asyncio
async def test_invalid_status_filter_message(client: AsyncClient):
    response = await client.get("/api/tasks", params={"status": "todo,someday"})

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid status value"
