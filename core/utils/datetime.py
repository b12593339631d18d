"""Datetime utilities for common operations."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: datetime) -> datetime:
    """
    Treat naive datetimes as UTC.

    Args:
        dt: Datetime that may lack tzinfo

    Returns:
        Timezone-aware datetime
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def add_minutes(dt: datetime, minutes: int) -> datetime:
    """Add minutes to a datetime."""
    return dt + timedelta(minutes=minutes)


def hours_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """
    Elapsed hours between two datetimes.

    Args:
        start: Start of the interval
        end: End of the interval

    Returns:
        Hours rounded to two decimals, or None if either bound is missing
    """
    if start is None or end is None:
        return None
    delta = ensure_aware(end) - ensure_aware(start)
    return round(delta.total_seconds() / 3600, 2)


def format_iso(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime as ISO 8601, passing None through."""
    return dt.isoformat() if dt else None
