"""Caller roles and per-field visibility of time entries.

Authorization decisions live here as data: ``field_access`` maps a caller's
role and relationship to the entry owner onto an access level per field.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any


class Role(str, Enum):
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    HR = "HR"
    ADMIN = "ADMIN"


class Relationship(str, Enum):
    """How the caller relates to the employee owning a record."""

    SELF = "SELF"
    OTHER = "OTHER"


class FieldAccess(str, Enum):
    NONE = "none"
    READ = "read"
    WRITE = "write"


IDENTITY_FIELDS = ("id", "employee_id", "status", "manual_entry", "created_at", "updated_at")
TIME_FIELDS = ("clock_in_time", "clock_out_time", "break_entries")
HOUR_FIELDS = ("total_hours", "regular_hours", "overtime_hours", "double_time_hours")
LOCATION_FIELDS = ("location", "clock_out_location")
NOTE_FIELDS = ("notes",)
APPROVAL_FIELDS = (
    "approved_by",
    "approved_at",
    "rejected_by",
    "rejected_at",
    "rejection_reason",
    "pending_change",
)

TIME_ENTRY_FIELDS = (
    IDENTITY_FIELDS + TIME_FIELDS + HOUR_FIELDS + LOCATION_FIELDS + NOTE_FIELDS + APPROVAL_FIELDS
)

APPROVER_ROLES = frozenset({Role.MANAGER, Role.HR, Role.ADMIN})


def _grant(groups: dict[tuple, FieldAccess]) -> dict[str, FieldAccess]:
    access = {field: FieldAccess.NONE for field in TIME_ENTRY_FIELDS}
    for fields, level in groups.items():
        for field in fields:
            access[field] = level
    return access


def field_access(role: Role, relationship: Relationship) -> dict[str, FieldAccess]:
    """
    Access level for every time entry field.

    Args:
        role: Caller's role
        relationship: Whether the caller owns the entry

    Returns:
        Mapping of field name to ``FieldAccess``

    Examples:
        >>> field_access(Role.EMPLOYEE, Relationship.OTHER)["clock_in_time"]
        <FieldAccess.NONE: 'none'>
        >>> field_access(Role.MANAGER, Relationship.OTHER)["approved_by"]
        <FieldAccess.WRITE: 'write'>
    """
    if role == Role.ADMIN:
        return _grant({TIME_ENTRY_FIELDS: FieldAccess.WRITE})

    if relationship == Relationship.SELF:
        # Own entries are edited through corrections, never approved
        return _grant({
            TIME_ENTRY_FIELDS: FieldAccess.READ,
            TIME_FIELDS + NOTE_FIELDS: FieldAccess.WRITE,
        })

    if role == Role.HR:
        return _grant({
            TIME_ENTRY_FIELDS: FieldAccess.READ,
            TIME_FIELDS + NOTE_FIELDS + APPROVAL_FIELDS: FieldAccess.WRITE,
        })

    if role == Role.MANAGER:
        return _grant({
            IDENTITY_FIELDS + TIME_FIELDS + HOUR_FIELDS + NOTE_FIELDS: FieldAccess.READ,
            APPROVAL_FIELDS: FieldAccess.WRITE,
        })

    return _grant({})


def visible_fields(payload: dict[str, Any], access: dict[str, FieldAccess]) -> dict[str, Any]:
    """Drop fields the caller may not read."""
    return {
        key: value
        for key, value in payload.items()
        if access.get(key, FieldAccess.NONE) != FieldAccess.NONE
    }


@dataclass(frozen=True)
class PermissionContext:
    """Authenticated caller identity handed to the time tracking routes."""

    user_id: str
    role: Role = Role.EMPLOYEE

    @property
    def can_approve(self) -> bool:
        return self.role in APPROVER_ROLES

    def relationship_to(self, employee_id: str) -> Relationship:
        return Relationship.SELF if employee_id == self.user_id else Relationship.OTHER

    def can_act_for(self, employee_id: str) -> bool:
        return employee_id == self.user_id or self.role in APPROVER_ROLES
