"""Employee time status projection model."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class EmployeeStatus(str, Enum):
    """What an employee is doing right now."""

    CLOCKED_OUT = "CLOCKED_OUT"
    CLOCKED_IN = "CLOCKED_IN"
    ON_BREAK = "ON_BREAK"


class EmployeeTimeStatus(BaseModel):
    """Derived view of the employee's open entry and break, if any.

    Never edited directly; rebuilt from entries and breaks whenever one of
    them opens or closes.
    """

    employee_id: str
    current_status: EmployeeStatus = EmployeeStatus.CLOCKED_OUT
    active_time_entry_id: Optional[str] = None
    active_break_entry_id: Optional[str] = None
    last_clock_in_time: Optional[datetime] = None
    last_break_start_time: Optional[datetime] = None
    total_hours_today: float = 0
    last_updated: Optional[datetime] = None
