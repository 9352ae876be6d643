"""Audit change model definitions."""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class AuditAction(str, Enum):
    """Mutations reported to the audit trail."""

    CLOCK_IN = "CLOCK_IN"
    CLOCK_OUT = "CLOCK_OUT"
    AUTO_CLOCK_OUT = "AUTO_CLOCK_OUT"
    BREAK_START = "BREAK_START"
    BREAK_END = "BREAK_END"
    MANUAL_ENTRY = "MANUAL_ENTRY"
    CORRECTION_REQUEST = "CORRECTION_REQUEST"
    CORRECTION_APPLIED = "CORRECTION_APPLIED"
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class AuditChange(BaseModel):
    """Before/after record of one successful mutation."""

    entity_type: str
    entity_id: str
    action: AuditAction
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None
    actor_id: str
    timestamp: datetime
