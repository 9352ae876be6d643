"""Hour arithmetic for closed time entries.

Worked time is the gross clock-in to clock-out span minus unpaid breaks.
The worked hours are then split into regular, overtime and (optionally)
double-time buckets against daily thresholds.
"""
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Protocol


class _TimedBreak(Protocol):
    paid: bool
    start_time: datetime
    end_time: Optional[datetime]


@dataclass(frozen=True)
class HourSplit:
    """Worked hours for one entry, rounded to hundredths."""

    total_hours: float
    regular_hours: float
    overtime_hours: float
    double_time_hours: float = 0.0

    def as_fields(self) -> dict:
        return asdict(self)


def round_half_up(value: float, places: int = 2) -> float:
    """Round like a payroll clerk would (0.005 -> 0.01), not banker's rounding."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def minutes_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 60


def break_duration_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between break start and end."""
    return int(round_half_up(minutes_between(start, end), 0))


def unpaid_break_minutes(breaks: Iterable[_TimedBreak]) -> int:
    """
    Sum the duration of closed, unpaid breaks.

    Args:
        breaks: Break records exposing ``paid``, ``start_time`` and ``end_time``

    Returns:
        Minutes to deduct from the gross span
    """
    total = 0
    for item in breaks:
        if item.paid or item.end_time is None:
            continue
        total += break_duration_minutes(item.start_time, item.end_time)
    return total


def split_hours(
    total_hours: float,
    overtime_threshold: float,
    double_time_threshold: Optional[float] = None,
) -> HourSplit:
    """
    Split worked hours into regular / overtime / double-time buckets.

    Without a double-time threshold everything above ``overtime_threshold``
    is overtime.

    Examples:
        >>> split_hours(10, 8)
        HourSplit(total_hours=10.0, regular_hours=8.0, overtime_hours=2.0, double_time_hours=0.0)
        >>> split_hours(13, 8, 12).double_time_hours
        1.0
    """
    regular = min(total_hours, overtime_threshold)
    overtime = total_hours - regular
    double_time = 0.0

    if double_time_threshold is not None and total_hours > double_time_threshold:
        overtime = double_time_threshold - overtime_threshold
        double_time = total_hours - double_time_threshold

    return HourSplit(
        total_hours=round_half_up(total_hours),
        regular_hours=round_half_up(regular),
        overtime_hours=round_half_up(overtime),
        double_time_hours=round_half_up(double_time),
    )


def calculate_entry_hours(
    clock_in_time: datetime,
    clock_out_time: datetime,
    breaks: Iterable[_TimedBreak],
    overtime_threshold: float,
    double_time_threshold: Optional[float] = None,
) -> HourSplit:
    """
    Compute the hour split for a closed entry.

    Args:
        clock_in_time: Start of the session
        clock_out_time: End of the session
        breaks: Breaks taken during the session
        overtime_threshold: Hours after which overtime starts
        double_time_threshold: Optional hours after which double time starts

    Returns:
        HourSplit with totals rounded to two decimals
    """
    gross = minutes_between(clock_in_time, clock_out_time)
    worked = max(gross - unpaid_break_minutes(breaks), 0)
    total_hours = round_half_up(worked / 60)
    return split_hours(total_hours, overtime_threshold, double_time_threshold)
