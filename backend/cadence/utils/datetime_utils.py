"""
Datetime utilities.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional

# UTC timezone constant
UTC = timezone.utc


def now_utc() -> datetime:
    """
    Get current UTC datetime (timezone-aware).

    Replaces datetime.utcnow() which is deprecated in Python 3.12+.
    """
    return datetime.now(UTC)


def day_offset(start: Optional[date], other: Optional[date]) -> Optional[int]:
    """Days from ``start`` to ``other``, or None if either is missing."""
    if start is None or other is None:
        return None
    return (other - start).days


def shift_date(value: date, days: Optional[int]) -> Optional[date]:
    """Shift ``value`` by ``days``; None offset means no date."""
    if days is None:
        return None
    return value + timedelta(days=days)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to a naive datetime read back from SQLite."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
