"""UTC-everywhere time handling for checkout deadlines."""

import math
from datetime import datetime, timedelta, timezone


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Raises ValueError if datetime is naive (no timezone).
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime to UTC. Datetime must be timezone-aware."
        )
    return dt.astimezone(timezone.utc)


def parse_iso(iso_string: str) -> datetime:
    """
    Parse ISO 8601 datetime string to UTC datetime.

    Raises ValueError if string has no timezone info.
    """
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot parse naive datetime string. "
            "Include timezone offset (e.g., 'Z' or '+00:00')."
        )
    return to_utc(dt)


def deadline_after(seconds: int, start: datetime | None = None) -> datetime:
    """UTC instant `seconds` after `start` (defaults to now)."""
    return (start or now_utc()) + timedelta(seconds=seconds)


def seconds_until(deadline: datetime, now: datetime | None = None) -> int:
    """
    Whole seconds left before a deadline, never negative.

    Partial seconds round up so a deadline one millisecond away still
    reports one second remaining.
    """
    remaining = (to_utc(deadline) - (now or now_utc())).total_seconds()
    if remaining <= 0:
        return 0
    return math.ceil(remaining)
