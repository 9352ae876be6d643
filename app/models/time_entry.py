"""Time entry model definitions."""
from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from app.models.break_entry import BreakType


class TimeEntryStatus(str, Enum):
    """Lifecycle of a single work session."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    PENDING_APPROVAL = "PENDING_APPROVAL"


class GeoLocation(BaseModel):
    """Coordinates supplied by the client; passed through untouched."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: Optional[float] = None


class HourFields(BaseModel):
    """Hour totals as stored on an entry."""

    total_hours: Optional[float] = None
    regular_hours: Optional[float] = None
    overtime_hours: Optional[float] = None
    double_time_hours: Optional[float] = None


class CorrectionSnapshot(HourFields):
    """Entry values as they were before a correction was requested."""

    clock_in_time: datetime
    clock_out_time: Optional[datetime] = None
    notes: str = ""


class PendingManualCreation(BaseModel):
    """A brand new entry awaiting approval; rejecting it deletes it."""

    kind: Literal["manual_creation"] = "manual_creation"
    reason: str
    requested_by: str
    requested_at: datetime


class PendingCorrection(BaseModel):
    """An edit to a completed entry; rejecting it restores ``previous``."""

    kind: Literal["correction"] = "correction"
    reason: str
    requested_by: str
    requested_at: datetime
    previous: CorrectionSnapshot


PendingChange = Annotated[
    Union[PendingManualCreation, PendingCorrection],
    Field(discriminator="kind"),
]


class TimeEntry(HourFields):
    """Full time entry model with database fields."""

    id: str = Field(alias="_id", serialization_alias="id")
    employee_id: str
    clock_in_time: datetime
    clock_out_time: Optional[datetime] = None
    status: TimeEntryStatus
    manual_entry: bool = False
    location: Optional[GeoLocation] = None
    clock_out_location: Optional[GeoLocation] = None
    notes: str = ""
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[str] = None
    rejected_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    pending_change: Optional[PendingChange] = None
    break_entries: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"populate_by_name": True}

    @property
    def is_open(self) -> bool:
        return self.clock_out_time is None


class ManualBreak(BaseModel):
    """Break recorded as part of a manual entry."""

    break_type: BreakType
    start_time: datetime
    end_time: datetime
    paid: Optional[bool] = None

    @model_validator(mode="after")
    def check_order(self) -> "ManualBreak":
        if self.end_time <= self.start_time:
            raise ValueError("Break end time must be after start time")
        return self


class ManualEntryCreate(BaseModel):
    """Manual entry submission for a missed clock-in/out."""

    employee_id: str
    clock_in_time: datetime
    clock_out_time: datetime
    reason: str = Field(min_length=1)
    submitted_by: str
    breaks: list[ManualBreak] = Field(default_factory=list)
    notes: Optional[str] = None


class TimeEntryCorrection(BaseModel):
    """Field changes requested for an existing entry - all optional."""

    clock_in_time: Optional[datetime] = None
    clock_out_time: Optional[datetime] = None
    notes: Optional[str] = None

    def is_empty(self) -> bool:
        return self.model_dump(exclude_none=True) == {}
