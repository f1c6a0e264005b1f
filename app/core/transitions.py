# app/core/transitions.py
"""
Status lifecycle rules for the derived task timestamps.

``started_at`` records the first entry into in_progress and ``completed_at``
mirrors the approved status. Every write that can change a status goes
through :func:`apply_status_transition` before the session is committed.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union

from loguru import logger

from app.db.models.enums import TaskStatus

StatusLike = Union[TaskStatus, str, None]


@dataclass(frozen=True)
class DerivedTimestamps:
    started_at: Optional[datetime]
    completed_at: Optional[datetime]


def _as_status(value: StatusLike) -> Optional[TaskStatus]:
    return TaskStatus(value) if value is not None else None


def compute_derived_timestamps(
        previous_status: StatusLike,
        next_status: StatusLike,
        existing: DerivedTimestamps,
        now: datetime
) -> DerivedTimestamps:
    """
    Compute started_at / completed_at for a status change.

    ``previous_status`` is the value stored right before the write, or None
    for a row that is being created.
    """
    previous = _as_status(previous_status)
    current = _as_status(next_status)

    started_at = existing.started_at
    completed_at = existing.completed_at

    if current == TaskStatus.IN_PROGRESS and previous != TaskStatus.IN_PROGRESS and started_at is None:
        started_at = now

    if current == TaskStatus.APPROVED and previous != TaskStatus.APPROVED:
        completed_at = now

    if previous == TaskStatus.APPROVED and current != TaskStatus.APPROVED:
        completed_at = None

    if previous == TaskStatus.IN_PROGRESS and current == TaskStatus.TODO:
        started_at = None

    return DerivedTimestamps(started_at=started_at, completed_at=completed_at)


def apply_status_transition(task, previous_status: StatusLike, now: Optional[datetime] = None) -> DerivedTimestamps:
    """Write the derived timestamps for ``task.status`` onto the task."""
    now = now or datetime.now(timezone.utc)
    existing = DerivedTimestamps(started_at=task.started_at, completed_at=task.completed_at)

    derived = compute_derived_timestamps(previous_status, task.status, existing, now)

    if derived.started_at != existing.started_at:
        logger.debug(f"Task {task.id} started_at {existing.started_at} -> {derived.started_at}")
    if derived.completed_at != existing.completed_at:
        logger.debug(f"Task {task.id} completed_at {existing.completed_at} -> {derived.completed_at}")

    task.started_at = derived.started_at
    task.completed_at = derived.completed_at
    return derived
