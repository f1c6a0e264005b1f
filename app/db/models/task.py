# app/db/models/task.py
"""Task model - the single persisted work item"""
from sqlalchemy import Column, String, Text, Index, Enum, Numeric
from sqlalchemy.orm import validates

from app.db.models.base import Base, TimestampMixin, IDMixin, UTCDateTime
from app.db.models.enums import TaskStatus, TaskPriority, enum_values

TITLE_MAX_LENGTH = 100
ASSIGNEE_MAX_LENGTH = 50
TAGS_MAX_LENGTH = 200
PROJECT_ID_MAX_LENGTH = 50
PROJECT_NAME_MAX_LENGTH = 100


class Task(Base, IDMixin, TimestampMixin):
    """Task row with status/priority enums and derived lifecycle timestamps"""
    __tablename__ = "tasks"

    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=True)
    priority = Column(
        Enum(TaskPriority, name="task_priority", values_callable=enum_values, validate_strings=True),
        nullable=False,
        default=TaskPriority.MEDIUM,
        index=True
    )
    status = Column(
        Enum(TaskStatus, name="task_status", values_callable=enum_values, validate_strings=True),
        nullable=False,
        default=TaskStatus.TODO,
        index=True
    )
    assignee = Column(String(ASSIGNEE_MAX_LENGTH), nullable=True)
    due_date = Column(UTCDateTime, nullable=True)

    # Derived from status transitions, never written by callers
    started_at = Column(UTCDateTime, nullable=True)
    completed_at = Column(UTCDateTime, nullable=True)

    tags = Column(String(TAGS_MAX_LENGTH), nullable=True)
    estimated_hours = Column(Numeric(5, 2, asdecimal=False), nullable=True)
    actual_hours = Column(Numeric(5, 2, asdecimal=False), nullable=True)

    # Free-form project reference, no projects table behind it
    project_id = Column(String(PROJECT_ID_MAX_LENGTH), nullable=True, index=True)
    project_name = Column(String(PROJECT_NAME_MAX_LENGTH), nullable=True)

    __table_args__ = (
        Index('idx_task_status_priority', 'status', 'priority'),
        Index('idx_task_project_name', 'project_name'),
    )

    @validates("title")
    def validate_title(self, key, value):
        if value is None or not value.strip():
            raise ValueError("Task title must not be empty")
        if len(value) > TITLE_MAX_LENGTH:
            raise ValueError(f"Task title must be at most {TITLE_MAX_LENGTH} characters")
        return value

    @validates("status")
    def validate_status(self, key, value):
        return TaskStatus(value)

    @validates("priority")
    def validate_priority(self, key, value):
        return TaskPriority(value)

    def __repr__(self):
        return f"<Task id={self.id} title={self.title} status={self.status}>"
