# app/db/models/__init__.py
"""
Database models package
"""

from app.db.models.base import Base, TimestampMixin, IDMixin, UTCDateTime

from app.db.models.enums import TaskStatus, TaskPriority, SortOrder

from app.db.models.task import Task

__all__ = [
    'Base', 'TimestampMixin', 'IDMixin', 'UTCDateTime',
    'TaskStatus', 'TaskPriority', 'SortOrder',
    'Task',
]
