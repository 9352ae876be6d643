"""Interval overlap detection for time entries."""
from datetime import datetime
from typing import Iterable, Optional

from app.models.time_entry import TimeEntry


def intervals_overlap(
    a_start: datetime,
    a_end: Optional[datetime],
    b_start: datetime,
    b_end: Optional[datetime],
) -> bool:
    """
    Check whether two half-open intervals ``[start, end)`` intersect.

    An interval without an end is still in progress and extends forever.
    Intervals that merely touch (one ends exactly when the other starts)
    do not overlap.
    """
    a_ends_after_b_starts = a_end is None or a_end > b_start
    b_ends_after_a_starts = b_end is None or b_end > a_start
    return a_ends_after_b_starts and b_ends_after_a_starts


def find_overlapping_entries(
    start: datetime,
    end: Optional[datetime],
    entries: Iterable[TimeEntry],
    exclude_id: Optional[str] = None,
) -> list[TimeEntry]:
    """Return entries whose interval intersects ``[start, end)``."""
    return [
        entry
        for entry in entries
        if entry.id != exclude_id
        and intervals_overlap(start, end, entry.clock_in_time, entry.clock_out_time)
    ]
