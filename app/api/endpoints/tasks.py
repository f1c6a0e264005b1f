# app/api/endpoints/tasks.py
"""Task management endpoints"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from loguru import logger

from app.db.database import get_db
from app.db import crud
from app.core import labels
from app.core.config import Settings
from app.core.pagination import PaginatedResponse, PaginationMeta
from app.api.dependencies import get_settings, get_task_query
from app.api.schemas.common import APIResponse
from app.api.schemas.tasks import (
    TaskCreate, TaskUpdate, TaskResponse, TaskStatusUpdate, TaskStatusResponse,
    TaskQuery, OptionItem, ProjectItem
)
from app.exceptions.tasks import TaskNotFoundError, StoreError

router = APIRouter()


async def _load_task(db: AsyncSession, task_id: int):
    task = await crud.task.get_task_by_id(db, task_id)
    if not task:
        raise TaskNotFoundError(task_id)
    return task


async def list_projects(db: AsyncSession) -> APIResponse[List[ProjectItem]]:
    """Shared by /api/tasks/projects and /api/projects"""
    try:
        projects = await crud.task.list_projects(db)
        return APIResponse(data=[ProjectItem(**project) for project in projects])

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list projects: {e}")
        raise StoreError("Failed to retrieve projects", cause=e)


@router.get("/projects", response_model=APIResponse[List[ProjectItem]])
async def list_task_projects(db: AsyncSession = Depends(get_db)):
    """Distinct projects referenced by tasks"""
    return await list_projects(db)


@router.get("/options/status", response_model=APIResponse[List[OptionItem]])
async def list_status_options(config: Settings = Depends(get_settings)):
    """Status catalog with display labels and colours"""
    return APIResponse(data=labels.status_options(config.LABEL_LOCALE))


@router.get("/options/priority", response_model=APIResponse[List[OptionItem]])
async def list_priority_options(config: Settings = Depends(get_settings)):
    """Priority catalog with display labels and colours"""
    return APIResponse(data=labels.priority_options(config.LABEL_LOCALE))


@router.get("", response_model=PaginatedResponse[TaskResponse])
async def list_tasks(
    params: TaskQuery = Depends(get_task_query),
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings)
):
    """List tasks with filters, sorting and pagination"""
    try:
        tasks, total = await crud.task.list_tasks(db, params)

        return PaginatedResponse(
            data=[TaskResponse.from_model(task, config.LABEL_LOCALE) for task in tasks],
            pagination=PaginationMeta.build(total=total, page=params.page, limit=params.limit),
            filters=params.echo().model_dump(by_alias=True)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to list tasks: {e}")
        raise StoreError("Failed to retrieve tasks", cause=e)


@router.get("/{task_id}", response_model=APIResponse[TaskResponse])
async def get_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings)
):
    """Get a specific task by id"""
    try:
        task = await _load_task(db, task_id)
        return APIResponse(data=TaskResponse.from_model(task, config.LABEL_LOCALE))

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to get task {task_id}: {e}")
        raise StoreError("Failed to retrieve task", cause=e)


@router.post("", response_model=APIResponse[TaskResponse], status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings)
):
    """Create a new task"""
    try:
        task = await crud.task.create_task(db, task_data)
        return APIResponse(
            message="Task created",
            data=TaskResponse.from_model(task, config.LABEL_LOCALE)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to create task: {e}")
        raise StoreError("Failed to create task", cause=e)


@router.put("/{task_id}", response_model=APIResponse[TaskResponse])
async def update_task(
    updates: TaskUpdate,
    task_id: int,
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings)
):
    """Update a task, only the fields sent are changed"""
    try:
        task = await _load_task(db, task_id)
        updated_task = await crud.task.update_task(db, task, updates)

        return APIResponse(
            message="Task updated",
            data=TaskResponse.from_model(updated_task, config.LABEL_LOCALE)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update task {task_id}: {e}")
        raise StoreError("Failed to update task", cause=e)


@router.patch("/{task_id}/status", response_model=APIResponse[TaskStatusResponse])
async def update_task_status(
    status_update: TaskStatusUpdate,
    task_id: int,
    db: AsyncSession = Depends(get_db),
    config: Settings = Depends(get_settings)
):
    """Update only the status of a task"""
    try:
        task = await _load_task(db, task_id)
        updated_task = await crud.task.update_task_status(db, task, status_update.status)

        return APIResponse(
            message="Task status updated",
            data=TaskStatusResponse.from_model(updated_task, config.LABEL_LOCALE)
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to update task status {task_id}: {e}")
        raise StoreError("Failed to update task status", cause=e)


@router.delete("/{task_id}", response_model=APIResponse[None])
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db)
):
    """Delete a task"""
    try:
        task = await _load_task(db, task_id)
        await crud.task.delete_task(db, task)
        return APIResponse(message="Task deleted")

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Failed to delete task {task_id}: {e}")
        raise StoreError("Failed to delete task", cause=e)
