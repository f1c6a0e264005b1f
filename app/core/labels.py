# app/core/labels.py
"""Display labels and colours for task status and priority values"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

from app.db.models.enums import TaskStatus, TaskPriority

DEFAULT_LOCALE = "zh-CN"

STATUS_LABELS: Dict[str, Dict[TaskStatus, str]] = {
    "zh-CN": {
        TaskStatus.TODO: "待办",
        TaskStatus.IN_PROGRESS: "进行中",
        TaskStatus.PENDING_REVIEW: "待验收",
        TaskStatus.APPROVED: "已验收",
        TaskStatus.REJECTED_REVISION: "验收不通过-待修改",
        TaskStatus.CANCELLED: "已取消",
    },
    "en": {
        TaskStatus.TODO: "To do",
        TaskStatus.IN_PROGRESS: "In progress",
        TaskStatus.PENDING_REVIEW: "Pending review",
        TaskStatus.APPROVED: "Approved",
        TaskStatus.REJECTED_REVISION: "Rejected - needs revision",
        TaskStatus.CANCELLED: "Cancelled",
    },
}

PRIORITY_LABELS: Dict[str, Dict[TaskPriority, str]] = {
    "zh-CN": {
        TaskPriority.LOW: "低",
        TaskPriority.MEDIUM: "中",
        TaskPriority.HIGH: "高",
    },
    "en": {
        TaskPriority.LOW: "Low",
        TaskPriority.MEDIUM: "Medium",
        TaskPriority.HIGH: "High",
    },
}

# Ant Design tag colours used by the client
STATUS_COLORS: Dict[TaskStatus, str] = {
    TaskStatus.TODO: "default",
    TaskStatus.IN_PROGRESS: "processing",
    TaskStatus.PENDING_REVIEW: "warning",
    TaskStatus.APPROVED: "success",
    TaskStatus.REJECTED_REVISION: "error",
    TaskStatus.CANCELLED: "default",
}

PRIORITY_COLORS: Dict[TaskPriority, str] = {
    TaskPriority.LOW: "green",
    TaskPriority.MEDIUM: "orange",
    TaskPriority.HIGH: "red",
}

SECONDS_PER_DAY = 24 * 60 * 60


def to_naive_utc(dt: datetime) -> datetime:
    """SQLite hands back naive UTC values, PostgreSQL aware ones"""
    if dt.tzinfo is not None and dt.utcoffset() is not None:
        return dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _catalog(labels: Dict[str, dict], locale: str) -> dict:
    return labels.get(locale, labels[DEFAULT_LOCALE])


def status_label(status, locale: str = DEFAULT_LOCALE) -> str:
    return _catalog(STATUS_LABELS, locale)[TaskStatus(status)]


def priority_label(priority, locale: str = DEFAULT_LOCALE) -> str:
    return _catalog(PRIORITY_LABELS, locale)[TaskPriority(priority)]


def status_options(locale: str = DEFAULT_LOCALE) -> List[dict]:
    return [
        {"value": status.value, "label": status_label(status, locale), "color": STATUS_COLORS[status]}
        for status in TaskStatus
    ]


def priority_options(locale: str = DEFAULT_LOCALE) -> List[dict]:
    return [
        {"value": priority.value, "label": priority_label(priority, locale), "color": PRIORITY_COLORS[priority]}
        for priority in TaskPriority
    ]


def task_duration_days(started_at: Optional[datetime], completed_at: Optional[datetime]) -> Optional[float]:
    """Days between start and completion rounded to 2 places, None unless both are set"""
    if started_at is None or completed_at is None:
        return None
    if (started_at.tzinfo is None) != (completed_at.tzinfo is None):
        started_at, completed_at = to_naive_utc(started_at), to_naive_utc(completed_at)
    return round((completed_at - started_at).total_seconds() / SECONDS_PER_DAY, 2)
