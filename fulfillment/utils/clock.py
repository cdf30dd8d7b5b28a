"""Time helpers."""

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def combine_local(day: date, at: time, tz_name: str) -> datetime:
    """Combine a local calendar date and wall-clock time into an aware datetime."""
    return datetime.combine(day, at, tzinfo=ZoneInfo(tz_name))
