"""Domain errors raised by the time tracking engine.

Two business kinds matter to callers: ``VALIDATION`` (the input is wrong or
out of policy) and ``STATE_CONFLICT`` (the transition is illegal from the
current state, or the world changed under the caller). Store failures are
not wrapped and propagate as-is.
"""
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    """Broad error categories used to pick an HTTP status."""

    VALIDATION = "VALIDATION"
    STATE_CONFLICT = "STATE_CONFLICT"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"


class TimeTrackingError(Exception):
    """Base class for business rule violations."""

    kind: ErrorKind = ErrorKind.VALIDATION
    code: str = "TIME_TRACKING_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize for an error response body."""
        return {
            "code": self.code,
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
        }


# Validation


class TimeValidationError(TimeTrackingError):
    """Malformed or out-of-policy input."""

    kind = ErrorKind.VALIDATION
    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if field:
            details.setdefault("errors", [{"field": field, "message": message}])
        super().__init__(message, details)
        self.field = field


class FutureTimeError(TimeValidationError):
    """A timestamp lies in the future."""

    def __init__(self, field: str, attempted: datetime):
        super().__init__(
            f"{field} cannot be in the future",
            field=field,
            details={"attempted_time": attempted.isoformat()},
        )


class ExcessiveHoursError(TimeValidationError):
    """Worked hours exceed the configured daily maximum."""

    def __init__(self, hours: float, limit: float):
        super().__init__(
            f"Total hours ({hours}) exceeds maximum daily hours ({limit})",
            field="hours",
            details={"hours": hours, "limit": limit},
        )


# State conflicts


class ClockStateError(TimeTrackingError):
    """The requested clock transition is illegal from the current status."""

    kind = ErrorKind.STATE_CONFLICT
    code = "CLOCK_STATE_ERROR"


class AlreadyClockedInError(ClockStateError):
    def __init__(self, current_status: str, active_entry_id: Optional[str] = None):
        super().__init__(
            f"Cannot clock in. Current status: {current_status}",
            {"current_status": current_status, "active_time_entry_id": active_entry_id},
        )


class NotClockedInError(ClockStateError):
    def __init__(self, current_status: str):
        super().__init__(
            f"Not currently clocked in. Current status: {current_status}",
            {"current_status": current_status},
        )


class BreakStateError(ClockStateError):
    def __init__(self, message: str, current_status: str):
        super().__init__(message, {"current_status": current_status})


class IncompleteEntriesError(ClockStateError):
    """Clock-in refused because earlier sessions were never closed."""

    def __init__(self, entry_ids: list[str]):
        super().__init__(
            "Cannot clock in with incomplete time entries",
            {"incomplete_entries": entry_ids},
        )


class ConcurrentModificationError(ClockStateError):
    """A racing request for the same employee won; state changed underneath."""

    def __init__(self, employee_id: str, reason: str = "concurrent update"):
        super().__init__(
            f"Time status for employee {employee_id} changed concurrently",
            {"employee_id": employee_id, "reason": reason},
        )


class TimeEntryConflictError(TimeTrackingError):
    """Overlapping intervals or an entry in the wrong approval state."""

    kind = ErrorKind.STATE_CONFLICT
    code = "TIME_ENTRY_CONFLICT"


# Lookups and authority


class TimeEntryNotFoundError(TimeTrackingError):
    kind = ErrorKind.NOT_FOUND
    code = "TIME_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str, what: str = "Time entry"):
        super().__init__(f"{what} not found", {"id": entry_id})


class CorrectionNotAllowedError(TimeTrackingError):
    kind = ErrorKind.FORBIDDEN
    code = "UNAUTHORIZED_CORRECTION"

    def __init__(self):
        super().__init__("Cannot correct time entries for other employees")
