"""Break entry model definitions."""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class BreakType(str, Enum):
    """Kinds of breaks an employee can take."""

    LUNCH = "LUNCH"
    SHORT_BREAK = "SHORT_BREAK"
    PERSONAL = "PERSONAL"


# Whether a break counts as worked time unless the caller says otherwise
DEFAULT_BREAK_PAID = {
    BreakType.LUNCH: False,
    BreakType.SHORT_BREAK: True,
    BreakType.PERSONAL: False,
}


def default_paid(break_type: BreakType) -> bool:
    """Paid flag for a break type; unknown types are unpaid."""
    return DEFAULT_BREAK_PAID.get(break_type, False)


class BreakEntry(BaseModel):
    """Full break entry model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    time_entry_id: str
    break_type: BreakType
    start_time: datetime
    end_time: Optional[datetime] = None
    paid: bool
    duration_minutes: Optional[int] = None
    notes: str = ""
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @property
    def is_open(self) -> bool:
        return self.end_time is None
