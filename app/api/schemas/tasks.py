# app/api/schemas/tasks.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime
import math

from app.core import labels
from app.core.pagination import PaginationParams
from app.db.models import TaskStatus, TaskPriority
from app.db.models.base import to_utc
from app.db.models.task import (
    TITLE_MAX_LENGTH, ASSIGNEE_MAX_LENGTH, TAGS_MAX_LENGTH,
    PROJECT_ID_MAX_LENGTH, PROJECT_NAME_MAX_LENGTH
)

TASK_SORT_FIELDS = (
    "id", "title", "priority", "status", "assignee", "due_date",
    "started_at", "completed_at", "estimated_hours", "actual_hours",
    "project_id", "project_name", "created_at", "updated_at",
)

MAX_HOURS = 999.99

OPTIONAL_TEXT_LIMITS = {
    "description": None,
    "assignee": ASSIGNEE_MAX_LENGTH,
    "tags": TAGS_MAX_LENGTH,
    "project_id": PROJECT_ID_MAX_LENGTH,
    "project_name": PROJECT_NAME_MAX_LENGTH,
}


def clean_title(value: Any) -> str:
    """Trim a title and enforce 1..100 characters"""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError("Task title must not be empty")
    if not isinstance(value, str):
        raise ValueError("Task title must be a string")
    value = value.strip()
    if len(value) > TITLE_MAX_LENGTH:
        raise ValueError(f"Task title must be at most {TITLE_MAX_LENGTH} characters")
    return value


def clean_status(value: Any) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        raise ValueError("Invalid status value")


def clean_priority(value: Any) -> TaskPriority:
    try:
        return TaskPriority(value)
    except ValueError:
        raise ValueError("Invalid priority value")


def clean_text(value: Any, max_length: Optional[int] = None) -> Optional[str]:
    """Trimmed string, or None when absent or blank"""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError("Must be a string")
    value = value.strip()
    if not value:
        return None
    if max_length is not None and len(value) > max_length:
        raise ValueError(f"Must be at most {max_length} characters")
    return value


def clean_hours(value: Any) -> Optional[float]:
    """Floating point hours to 2 places, None when absent or empty"""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValueError("Must be a number")
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ValueError("Must be a number")
    if not math.isfinite(hours):
        raise ValueError("Must be a number")
    # Stored as NUMERIC(5, 2), round first so 999.999 cannot become 1000.00
    hours = round(hours, 2)
    if hours < 0 or hours > MAX_HOURS:
        raise ValueError("Must be between 0 and 999.99")
    return hours


def clean_due_date(value: Any) -> Optional[datetime]:
    """Parse ISO dates and datetimes into UTC, None when absent or empty. Naive values are UTC."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, datetime):
        return to_utc(value)
    if not isinstance(value, str):
        raise ValueError("Invalid date")
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        raise ValueError("Invalid date")
    return to_utc(parsed)


class TaskFields(BaseModel):
    """Writable task fields shared by create and update"""
    description: Optional[str] = Field(None, description="Task description")
    assignee: Optional[str] = Field(None, description="Person responsible")
    due_date: Optional[datetime] = Field(None, description="Due date")
    tags: Optional[str] = Field(None, description="Comma separated tags")
    estimated_hours: Optional[float] = Field(None, description="Estimated effort in hours")
    actual_hours: Optional[float] = Field(None, description="Actual effort in hours")
    project_id: Optional[str] = Field(None, description="Project identifier")
    project_name: Optional[str] = Field(None, description="Project name")

    @field_validator("description", "assignee", "tags", "project_id", "project_name", mode="before")
    @classmethod
    def validate_text(cls, v, info):
        return clean_text(v, OPTIONAL_TEXT_LIMITS[info.field_name])

    @field_validator("estimated_hours", "actual_hours", mode="before")
    @classmethod
    def validate_hours(cls, v):
        return clean_hours(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def validate_due_date(cls, v):
        return clean_due_date(v)


class TaskCreate(TaskFields):
    """Schema for creating a task"""
    title: Optional[str] = Field(None, validate_default=True, description="Task title (required)")
    priority: TaskPriority = Field(TaskPriority.MEDIUM, description="Task priority")
    status: TaskStatus = Field(TaskStatus.TODO, description="Initial status")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v):
        return clean_title(v)

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v):
        return clean_priority(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return clean_status(v)


class TaskUpdate(TaskFields):
    """Schema for a partial update, only fields present in the body are written"""
    title: Optional[str] = Field(None, description="Task title")
    priority: Optional[TaskPriority] = None
    status: Optional[TaskStatus] = None

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v):
        return clean_title(v)

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v):
        return clean_priority(v)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return clean_status(v)


class TaskStatusUpdate(BaseModel):
    """Schema for the quick status patch"""
    status: Optional[TaskStatus] = Field(None, validate_default=True, description="New task status")

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        if v is None or v == "":
            raise ValueError("Status is required")
        return clean_status(v)


class TaskResponse(BaseModel):
    """Task as returned to clients, with display-only derived fields"""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    title: str
    description: Optional[str] = None
    priority: TaskPriority
    status: TaskStatus
    assignee: Optional[str] = None
    due_date: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    tags: Optional[str] = None
    estimated_hours: Optional[float] = None
    actual_hours: Optional[float] = None
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    status_text: str = Field(..., alias="statusText")
    priority_text: str = Field(..., alias="priorityText")
    duration: Optional[float] = Field(None, description="Days from start to approval")

    @classmethod
    def from_model(cls, task, locale: str = labels.DEFAULT_LOCALE):
        """Convert Task model to API response"""
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            priority=task.priority,
            status=task.status,
            assignee=task.assignee,
            due_date=task.due_date,
            started_at=task.started_at,
            completed_at=task.completed_at,
            tags=task.tags,
            estimated_hours=task.estimated_hours,
            actual_hours=task.actual_hours,
            project_id=task.project_id,
            project_name=task.project_name,
            created_at=task.created_at,
            updated_at=task.updated_at,
            status_text=labels.status_label(task.status, locale),
            priority_text=labels.priority_label(task.priority, locale),
            duration=labels.task_duration_days(task.started_at, task.completed_at)
        )


class TaskStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    status: TaskStatus
    status_text: str = Field(..., alias="statusText")
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, task, locale: str = labels.DEFAULT_LOCALE):
        return cls(
            id=task.id,
            status=task.status,
            status_text=labels.status_label(task.status, locale),
            started_at=task.started_at,
            completed_at=task.completed_at
        )


class OptionItem(BaseModel):
    value: str
    label: str
    color: str


class ProjectItem(BaseModel):
    id: str
    name: str


class CountWithLabel(BaseModel):
    count: int
    label: str
    color: str


class TaskStats(BaseModel):
    """Aggregate counts over all tasks"""
    model_config = ConfigDict(populate_by_name=True)

    total: int = Field(..., description="Total number of tasks")
    completed: int = Field(..., description="Number of approved tasks")
    in_progress: int = Field(..., alias="inProgress", description="Number of in-progress tasks")
    completion_rate: int = Field(..., alias="completionRate", description="Approved share in percent")
    status_stats: Dict[str, CountWithLabel] = Field(..., alias="statusStats")
    priority_stats: Dict[str, CountWithLabel] = Field(..., alias="priorityStats")


class TaskFilters(BaseModel):
    """Filters echoed back with a list response"""
    status: Optional[List[str]] = None
    priority: Optional[List[str]] = None
    project_id: Optional[List[str]] = None
    assignee: Optional[str] = None
    search: Optional[str] = None
    sort_by: str = Field(..., alias="sortBy")
    sort_order: str = Field(..., alias="sortOrder")

    model_config = ConfigDict(populate_by_name=True)


class TaskQuery(PaginationParams):
    """Typed form of the list endpoint's query string"""
    status: List[TaskStatus] = Field(default_factory=list)
    priority: List[TaskPriority] = Field(default_factory=list)
    project_id: List[str] = Field(default_factory=list)
    assignee: Optional[str] = None
    search: Optional[str] = None

    @field_validator("sort_by")
    @classmethod
    def validate_sort_by(cls, v):
        if v not in TASK_SORT_FIELDS:
            raise ValueError(f"Invalid sortBy value, expected one of: {', '.join(TASK_SORT_FIELDS)}")
        return v

    @field_validator("sort_order", mode="before")
    @classmethod
    def validate_sort_order(cls, v):
        if isinstance(v, str) and v.upper() in ("ASC", "DESC"):
            return v.upper()
        raise ValueError("sortOrder must be ASC or DESC")

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        return [clean_status(item) for item in v]

    @field_validator("priority", mode="before")
    @classmethod
    def validate_priority(cls, v):
        return [clean_priority(item) for item in v]

    @field_validator("assignee", "search", mode="before")
    @classmethod
    def validate_text(cls, v):
        if v is None or v == "":
            return None
        return v

    def echo(self) -> TaskFilters:
        return TaskFilters(
            status=[s.value for s in self.status] or None,
            priority=[p.value for p in self.priority] or None,
            project_id=self.project_id or None,
            assignee=self.assignee,
            search=self.search,
            sort_by=self.sort_by,
            sort_order=self.sort_order.value
        )
