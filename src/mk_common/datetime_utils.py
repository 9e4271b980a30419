"""UTC datetime utilities."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def hours_between(start: datetime, end: datetime) -> float:
    """Elapsed hours from start to end (negative if end precedes start)."""
    return (end - start) / timedelta(hours=1)
