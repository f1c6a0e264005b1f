from datetime import timezone

from sqlalchemy import Column, Integer, DateTime, func
from sqlalchemy.types import TypeDecorator
from app.db.database import Base


def to_utc(value):
    """Aware UTC datetime, naive values are taken to be UTC already"""
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC datetimes on every backend.

    SQLite keeps no offset, so values are normalised to UTC on the way in
    and naive values read back are tagged as UTC. Naive input is taken as UTC.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else to_utc(value)

    def process_result_value(self, value, dialect):
        return None if value is None else to_utc(value)


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps"""
    created_at = Column(UTCDateTime, server_default=func.now(), nullable=False)
    updated_at = Column(UTCDateTime, onupdate=func.now(), server_default=func.now(), nullable=False)

class IDMixin:
    """Mixin for an auto-assigned integer surrogate key"""
    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
