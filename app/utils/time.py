"""Timestamp helpers.

All times are stored and compared as naive UTC datetimes, matching what
pymongo hands back by default.
"""
from datetime import datetime, time, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to naive UTC.

    Aware datetimes are converted to UTC and stripped of tzinfo; naive ones
    are assumed to already be UTC.

    Examples:
        >>> from datetime import timedelta
        >>> to_naive_utc(datetime(2024, 1, 1, 10, tzinfo=timezone(timedelta(hours=2))))
        datetime.datetime(2024, 1, 1, 8, 0)
    """
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min)
