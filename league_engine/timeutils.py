"""
Time helpers.

All timestamps in the store are naive UTC datetimes, which is what SQLite
hands back on read, so comparisons never mix aware and naive values.
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def month_key(dt: datetime) -> tuple[int, int]:
    """(year, month) bucket used for monthly leaderboards."""
    return dt.year, dt.month
