# app/api/endpoints/system.py
"""Aggregate, project and health endpoints under /api"""
import time
from datetime import datetime, timezone
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.db.database import get_db
from app.db import crud
from app.core import labels, tracing
from app.core.config import Settings
from app.api.dependencies import get_settings
from app.api.endpoints.tasks import list_projects
from app.api.schemas.common import APIResponse
from app.api.schemas.tasks import TaskStats, CountWithLabel, ProjectItem
from app.exceptions.tasks import StoreError

router = APIRouter()


@router.get("/projects", response_model=APIResponse[List[ProjectItem]])
async def list_all_projects(db: AsyncSession = Depends(get_db)):
    """Distinct projects referenced by tasks"""
    return await list_projects(db)


@router.get("/stats", response_model=APIResponse[TaskStats])
async def get_stats(
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings)
):
    """Task counts by status and priority with the overall completion rate"""
    try:
        stats = await crud.task.get_task_stats(db)
        locale = config.LABEL_LOCALE

        return APIResponse(data=TaskStats(
            total=stats["total"],
            completed=stats["completed"],
            in_progress=stats["in_progress"],
            completion_rate=stats["completion_rate"],
            status_stats={
                task_status.value: CountWithLabel(
                    count=count,
                    label=labels.status_label(task_status, locale),
                    color=labels.STATUS_COLORS[task_status]
                )
                for task_status, count in stats["status_counts"].items()
            },
            priority_stats={
                priority.value: CountWithLabel(
                    count=count,
                    label=labels.priority_label(priority, locale),
                    color=labels.PRIORITY_COLORS[priority]
                )
                for priority, count in stats["priority_counts"].items()
            }
        ))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to compute task statistics: {e}")
        raise StoreError("Failed to retrieve statistics", cause=e)


@router.get("/health")
async def health_check(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Liveness check with a database round trip and the task row count
    """
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        await db.execute(text("SELECT 1"))
        task_count = await crud.task.count_tasks(db)

        tracing.debug("Health check passed", endpoint="/api/health", task_count=task_count)
        return {
            "status": "OK",
            "timestamp": timestamp,
            "uptime": round(time.monotonic() - request.app.state.started_at, 3),
            "trace_id": tracing.get_current_trace_id(),
            "database": {
                "status": "connected",
                "taskCount": task_count
            }
        }

    except Exception as e:
        tracing.error(
            f"Health check failed: {e}",
            endpoint="/api/health",
            error_type=type(e).__name__
        )
        config: Settings = request.app.state.settings
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "status": "ERROR",
                "timestamp": timestamp,
                "error": str(e) if config.is_development else "Database unavailable"
            }
        )
