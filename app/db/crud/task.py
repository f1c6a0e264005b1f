# app/db/crud/task.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, Select
from typing import Optional, List, Dict, Any, Sequence, Tuple
from datetime import datetime, timezone
import math
import re
from loguru import logger

from app.core.pagination import AutoPaginator
from app.core.transitions import apply_status_transition
from app.middleware.monitoring import record_status_transition
from app.db.models import Task, TaskStatus, TaskPriority
from app.api.schemas.tasks import TaskCreate, TaskUpdate, TaskQuery, TASK_SORT_FIELDS

SORT_COLUMNS = {name: getattr(Task, name) for name in TASK_SORT_FIELDS}
SEARCH_COLUMNS = (Task.title, Task.description, Task.tags)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def project_slug(project_name: str) -> str:
    """Stable id for a project that only has a name"""
    return "auto_" + re.sub(r"\s+", "_", project_name.strip()).lower()


async def get_task_by_id(db: AsyncSession, task_id: int) -> Optional[Task]:
    """Get task by primary key"""
    result = await db.execute(select(Task).filter(Task.id == task_id))
    return result.scalars().first()


def build_task_filters(query: Select, params: TaskQuery) -> Select:
    """Apply the list filters of ``params`` to a select(Task)"""
    if params.status:
        query = query.filter(Task.status.in_(params.status))

    if params.priority:
        query = query.filter(Task.priority.in_(params.priority))

    if params.project_id:
        query = query.filter(Task.project_id.in_(params.project_id))

    # LIKE: case-sensitive on PostgreSQL, ASCII case-insensitive on SQLite
    if params.assignee:
        query = query.filter(Task.assignee.contains(params.assignee, autoescape=True))

    if params.search:
        query = query.filter(or_(
            *(column.contains(params.search, autoescape=True) for column in SEARCH_COLUMNS)
        ))

    return query


async def list_tasks(db: AsyncSession, params: TaskQuery) -> Tuple[Sequence[Task], int]:
    """Filtered, sorted page of tasks together with the total match count"""
    query = build_task_filters(select(Task), params)

    logger.debug(
        f"Listing tasks page={params.page} limit={params.limit} "
        f"sort={params.sort_by} {params.sort_order.value} filters={params.echo().model_dump(exclude_none=True)}"
    )

    return await AutoPaginator.paginate(
        db,
        query,
        params,
        sort_columns=SORT_COLUMNS,
        tiebreaker=Task.id
    )


async def create_task(db: AsyncSession, task_data: TaskCreate, now: Optional[datetime] = None) -> Task:
    """Create a new task"""
    try:
        task = Task(**task_data.model_dump())

        # A task created straight into in_progress/approved gets its timestamps too
        apply_status_transition(task, previous_status=None, now=now or _utc_now())

        db.add(task)
        await db.commit()
        await db.refresh(task)

        record_status_transition(None, task.status.value)
        logger.info(f"Task created: {task.title} (id={task.id}, status={task.status.value})")
        return task

    except Exception as e:
        logger.error(f"Failed to create task: {e}")
        await db.rollback()
        raise


async def update_task(
        db: AsyncSession,
        task: Task,
        updates: TaskUpdate,
        now: Optional[datetime] = None
) -> Task:
    """Update the fields present in ``updates`` and re-derive lifecycle timestamps"""
    try:
        update_data = updates.model_dump(exclude_unset=True)
        previous_status = task.status

        for field, value in update_data.items():
            setattr(task, field, value)

        apply_status_transition(task, previous_status=previous_status, now=now or _utc_now())

        await db.commit()
        await db.refresh(task)

        record_status_transition(previous_status.value, task.status.value)
        logger.info(
            f"Task updated: {task.title} (id={task.id}, status: "
            f"{previous_status.value} -> {task.status.value})"
        )
        return task

    except Exception as e:
        logger.error(f"Failed to update task {task.id}: {e}")
        await db.rollback()
        raise


async def update_task_status(
        db: AsyncSession,
        task: Task,
        new_status: TaskStatus,
        now: Optional[datetime] = None
) -> Task:
    """Quick status change, same lifecycle rules as a full update"""
    try:
        previous_status = task.status
        task.status = new_status

        apply_status_transition(task, previous_status=previous_status, now=now or _utc_now())

        await db.commit()
        await db.refresh(task)

        record_status_transition(previous_status.value, task.status.value)
        logger.info(f"Task status patched: {task.title} ({previous_status.value} -> {task.status.value})")
        return task

    except Exception as e:
        logger.error(f"Failed to update status of task {task.id}: {e}")
        await db.rollback()
        raise


async def delete_task(db: AsyncSession, task: Task) -> None:
    """Delete a task (hard delete)"""
    try:
        task_id, title = task.id, task.title
        await db.delete(task)
        await db.commit()
        logger.info(f"Task deleted: {title} (id={task_id})")

    except Exception as e:
        logger.error(f"Failed to delete task {task.id}: {e}")
        await db.rollback()
        raise


async def list_projects(db: AsyncSession) -> List[Dict[str, str]]:
    """
    Distinct projects derived from task rows, one per project_name.

    The id is the largest project_id seen for that name, or a slug of the
    name when no row carries one.
    """
    result = await db.execute(
        select(Task.project_name, func.max(Task.project_id))
        .filter(Task.project_name.is_not(None))
        .group_by(Task.project_name)
        .order_by(Task.project_name.asc())
    )

    return [
        {"id": project_id or project_slug(project_name), "name": project_name}
        for project_name, project_id in result.all()
    ]


async def count_tasks(db: AsyncSession) -> int:
    return await db.scalar(select(func.count(Task.id))) or 0


async def get_task_stats(db: AsyncSession) -> Dict[str, Any]:
    """Counts per status and per priority plus overall completion rate"""
    status_rows = await db.execute(select(Task.status, func.count(Task.id)).group_by(Task.status))
    priority_rows = await db.execute(select(Task.priority, func.count(Task.id)).group_by(Task.priority))

    status_counts = {status: 0 for status in TaskStatus}
    for status, count in status_rows.all():
        status_counts[TaskStatus(status)] = count

    priority_counts = {priority: 0 for priority in TaskPriority}
    for priority, count in priority_rows.all():
        priority_counts[TaskPriority(priority)] = count

    total = sum(status_counts.values())
    completed = status_counts[TaskStatus.APPROVED]

    return {
        "total": total,
        "completed": completed,
        "in_progress": status_counts[TaskStatus.IN_PROGRESS],
        "completion_rate": math.floor(completed * 100 / total + 0.5) if total else 0,
        "status_counts": status_counts,
        "priority_counts": priority_counts,
    }
