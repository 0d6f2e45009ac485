"""General utility functions."""
import uuid
from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo


def new_id() -> str:
    """Generate an opaque record id."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """Convert datetime to UTC timezone."""
    if dt.tzinfo is None:
        # Assume UTC if no timezone
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_timezone(dt: datetime, tz: ZoneInfo) -> datetime:
    """Convert datetime to specified timezone."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(tz)


def local_today(tz: ZoneInfo, now: Optional[datetime] = None) -> date:
    """Calendar date in the society's timezone."""
    return to_timezone(now or utcnow(), tz).date()


def is_expired(expires_at: Optional[datetime], now: Optional[datetime] = None) -> bool:
    """
    Check whether an expiry timestamp has passed.

    A missing expiry counts as expired. Naive datetimes (SQLite round-trips)
    are treated as UTC.
    """
    if expires_at is None:
        return True
    current = to_utc(now) if now else utcnow()
    return current >= to_utc(expires_at)
