from __future__ import annotations

"""Time-related helper functions."""

from datetime import date, datetime, time, timedelta, timezone


def utcnow() -> datetime:
    """Return an aware UTC timestamp."""
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    return utcnow().isoformat()


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, treating naive values as UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_score(value: str | datetime) -> float:
    """Return the epoch seconds used as a sorted-set score."""
    dt = parse_iso(value) if isinstance(value, str) else value
    return dt.timestamp()


def tomorrow(today: date | None = None) -> date:
    return (today or date.today()) + timedelta(days=1)


def parse_hhmm(value: str) -> time:
    """Parse ``HH:MM`` (seconds tolerated) into a :class:`datetime.time`."""
    return time.fromisoformat(value)


def day_bounds(day: date, end: bool = False) -> datetime:
    """Return the UTC start (or end) instant of ``day``."""
    moment = time.max if end else time.min
    return datetime.combine(day, moment, tzinfo=timezone.utc)
