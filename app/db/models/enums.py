# app/db/models/enums.py
import enum


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskStatus(str, enum.Enum):
    """Lifecycle stages of a task"""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    REJECTED_REVISION = "rejected_revision"
    CANCELLED = "cancelled"


class SortOrder(str, enum.Enum):
    ASC = "ASC"
    DESC = "DESC"


def enum_values(enum_cls) -> list:
    """Values of an enum in declaration order, used for DB enum storage"""
    return [member.value for member in enum_cls]
