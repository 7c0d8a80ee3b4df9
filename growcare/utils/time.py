"""Utility functions for time handling.

All timestamps should be UTC and timezone-aware. Persist UTC timestamps as
ISO-8601 strings with timezone offsets (e.g., "+00:00") via iso_now().
"""

from __future__ import annotations

from datetime import datetime, time, timedelta, timezone
from typing import Any


def utc_now() -> datetime:
    """Return current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def iso_now(*, timespec: str | None = None) -> str:
    """Return current UTC time as an ISO8601 string (timezone-aware)."""
    now = utc_now()
    if timespec:
        return now.isoformat(timespec=timespec)
    return now.isoformat()


def start_of_day(dt: datetime) -> datetime:
    """Midnight of the calendar day containing `dt`, keeping its tzinfo."""
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def parse_time_of_day(value: Any) -> time | None:
    """Parse "HH:MM" (or a time instance) into a time; None on failure."""
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        return None
    try:
        hour, minute = value.strip().split(":")[:2]
        return time(int(hour), int(minute))
    except ValueError:
        return None


def whole_hours_between(start: datetime, end: datetime) -> int:
    """Floor of the hours elapsed from start to end (negative if end < start)."""
    return int((end - start) // timedelta(hours=1))


def coerce_datetime(value: Any) -> datetime | None:
    """
    Coerce value to datetime, returning None on failure.

    Args:
        value: String or datetime to coerce

    Returns:
        Datetime in timezone.utc or None if invalid
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw.replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    else:
        parsed = parsed.replace(tzinfo=timezone.utc)

    return parsed
