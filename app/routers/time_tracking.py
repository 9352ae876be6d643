"""Time tracking endpoints - clock, breaks, manual entries and approvals."""
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from app.config import settings
from app.database import database, get_database
from app.exceptions import ErrorKind, TimeTrackingError
from app.models.break_entry import BreakEntry, BreakType
from app.models.time_entry import (
    GeoLocation,
    ManualBreak,
    ManualEntryCreate,
    TimeEntry,
    TimeEntryCorrection,
    TimeEntryStatus,
)
from app.models.time_status import EmployeeTimeStatus
from app.repositories.base import Pagination, TimeEntryFilter
from app.repositories.break_entry_repository import MongoBreakEntryRepository
from app.repositories.time_entry_repository import MongoTimeEntryRepository
from app.repositories.time_status_repository import MongoTimeStatusProjection
from app.repositories.transactions import MongoTransactionManager
from app.routers.auth import get_permission_context
from app.services.audit_service import AuditService
from app.services.time_tracking_service import TimeTrackingService
from app.utils.permissions import PermissionContext, field_access, visible_fields


router = APIRouter(prefix="/time", tags=["time"])

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.STATE_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
}


def get_time_tracking_service(db=Depends(get_database)) -> TimeTrackingService:
    """Dependency wiring the service to the Mongo stores."""
    return TimeTrackingService(
        MongoTimeEntryRepository(db),
        MongoBreakEntryRepository(db),
        MongoTimeStatusProjection(db),
        MongoTransactionManager(database.client, db),
        config=settings.time_tracking_config(),
        audit=AuditService(db),
    )


def to_http_exception(error: TimeTrackingError) -> HTTPException:
    return HTTPException(status_code=STATUS_BY_KIND[error.kind], detail=error.to_dict())


def resolve_employee(context: PermissionContext, employee_id: Optional[str]) -> str:
    """Default to the caller; acting for someone else needs an approver role."""
    employee_id = employee_id or context.user_id
    if not context.can_act_for(employee_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to act for this employee",
        )
    return employee_id


def require_approver(context: PermissionContext) -> None:
    if not context.can_approve:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Approver role required",
        )


def entry_payload(entry: TimeEntry, context: PermissionContext) -> dict:
    access = field_access(context.role, context.relationship_to(entry.employee_id))
    return visible_fields(entry.model_dump(mode="json"), access)


class ClockInRequest(BaseModel):
    """Request model for clocking in."""

    employee_id: Optional[str] = None
    clock_in_time: Optional[datetime] = None
    location: Optional[GeoLocation] = None
    notes: Optional[str] = None


class ClockOutRequest(BaseModel):
    """Request model for clocking out."""

    employee_id: Optional[str] = None
    clock_out_time: Optional[datetime] = None
    location: Optional[GeoLocation] = None
    notes: Optional[str] = None


class BreakStartRequest(BaseModel):
    """Request model for starting a break."""

    employee_id: Optional[str] = None
    break_type: BreakType
    start_time: Optional[datetime] = None
    paid: Optional[bool] = None
    notes: Optional[str] = None


class BreakEndRequest(BaseModel):
    """Request model for ending a break."""

    employee_id: Optional[str] = None
    end_time: Optional[datetime] = None
    notes: Optional[str] = None


class ManualEntryRequest(BaseModel):
    """Request model for a manual time entry."""

    employee_id: Optional[str] = None
    clock_in_time: datetime
    clock_out_time: datetime
    reason: str = Field(min_length=1)
    breaks: list[ManualBreak] = Field(default_factory=list)
    notes: Optional[str] = None


class CorrectionRequest(TimeEntryCorrection):
    """Request model for correcting a time entry."""

    reason: str = Field(min_length=1)


class ApproveRequest(BaseModel):
    notes: Optional[str] = None


class RejectRequest(BaseModel):
    reason: str = Field(min_length=1)
    notes: Optional[str] = None


@router.post("/clock-in", response_model=TimeEntry, status_code=status.HTTP_201_CREATED)
async def clock_in(
    request: ClockInRequest,
    context: PermissionContext = Depends(get_permission_context),
    service: TimeTrackingService = Depends(get_time_tracking_service),
):
    """
    Clock in.

    - Requires authentication
    - Only one active entry per employee
    """
    employee_id = resolve_employee(context, request.employee_id)
    try:
        return await service.clock_in(
            employee_id=employee_id,
            clock_in_time=request.clock_in_time,
            location=request.location,
            notes=request.notes,
        )
    except TimeTrackingError as e:
        raise to_http_exception(e)


@router.post("/clock-out", response_model=TimeEntry)
async def clock_out(
    request: ClockOutRequest,
    context: PermissionContext = Depends(get_permission_context),
    service: TimeTrackingService = Depends(get_time_tracking_service),
):
    """
    Clock out and compute regular/overtime hours.

    - Must be clocked in and not on break
    """
    employee_id = resolve_employee(context, request.employee_id)
    try:
        return await service.clock_out(
            employee_id=employee_id,
            clock_out_time=request.clock_out_time,
            location=request.location,
            notes=request.notes,
        )
    except TimeTrackingError as e:
        raise to_http_exception(e)


@router.post("/break/start", response_model=BreakEntry, status_code=status.HTTP_201_CREATED)
async def start_break(
    request: BreakStartRequest,
    context: PermissionContext = Depends(get_permission_context),
    service: TimeTrackingService = Depends(get_time_tracking_service),
):
    """Start a break; paid defaults by break type."""
    employee_id = resolve_employee(context, request.employee_id)
    try:
        return await service.start_break(
            employee_id=employee_id,
            break_type=request.break_type,
            start_time=request.start_time,
            paid=request.paid,
            notes=request.notes,
        )
    except TimeTrackingError as e:
        raise to_http_exception(e)


@router.post("/break/end", response_model=BreakEntry)
async def end_break(
    request: BreakEndRequest,
    context: PermissionContext = Depends(get_permission_context),
    service: TimeTrackingService = Depends(get_time_tracking_service),
):
    """End the current break."""
    employee_id = resolve_employee(context, request.employee_id)
    try:
        return await service.end_break(
            employee_id=employee_id,
            end_time=request.end_time,
            notes=request.notes,
        )
    except TimeTrackingError as e:
        raise to_http_exception(e)


@router.get("/status", response_model=EmployeeTimeStatus)
async def get_status(
    employee_id: Optional[str] = Query(None),
    context: PermissionContext = Depends(get_permission_context),
    service: TimeTrackingService = Depends(get_time_tracking_service),
):
    """Current clock status of the caller (or of an employee, for approvers)."""
    return await service.get_current_status(resolve_employee(context, employee_id))


@router.get("/entries")
async def list_entries(
    employee_id: Optional[str] = Query(None),
    entry_status: Optional[TimeEntryStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1),
    context: PermissionContext = Depends(get_permission_context),
    service: TimeTrackingService = Depends(get_time_tracking_service),
):
    """
    List time entries.

    - Employees see their own entries; approvers may filter by employee
    - Results sorted by clock-in time descending
    """
    if not context.can_approve:
        employee_id = resolve_employee(context, employee_id)

    result = await service.list_time_entries(
        TimeEntryFilter(
            employee_id=employee_id,
            status=entry_status,
            start_date=start_date,
            end_date=end_date,
        ),
        Pagination(page=page, page_size=page_size),
    )
    return {
        "items": [entry_payload(entry, context) for entry in result.items],
        "total": result.total,
        "page": result.page,
        "page_size": result.page_size,
    }


@router.get("/entries/{entry_id}")
async def get_entry(
    entry_id: str,
    context: PermissionContext = Depends(get_permission_context),
    service: TimeTrackingService = Depends(get_time_tracking_service),
):
    """Get one time entry, showing only the fields the caller may read."""
    try:
        entry = await service.get_time_entry(entry_id)
    except TimeTrackingError as e:
        raise to_http_exception(e)

    resolve_employee(context, entry.employee_id)
    return entry_payload(entry, context)


@router.post("/entries/manual", response_model=TimeEntry, status_code=status.HTTP_201_CREATED)
async def submit_manual_entry(
    request: ManualEntryRequest,
    context: PermissionContext = Depends(get_permission_context),
    service: TimeTrackingService = Depends(get_time_tracking_service),
):
    """
    Submit a manual entry for a missed clock-in/out.

    - Pending approval unless approval is disabled
    - Must not overlap existing entries
    """
    employee_id = resolve_employee(context, request.employee_id)
    try:
        return await service.submit_manual_entry(
            ManualEntryCreate(
                employee_id=employee_id,
                clock_in_time=request.clock_in_time,
                clock_out_time=request.clock_out_time,
                reason=request.reason,
                submitted_by=context.user_id,
                breaks=request.breaks,
                notes=request.notes,
            )
        )
    except TimeTrackingError as e:
        raise to_http_exception(e)


@router.post("/entries/{entry_id}/correction", response_model=TimeEntry)
async def submit_correction(
    entry_id: str,
    request: CorrectionRequest,
    context: PermissionContext = Depends(get_permission_context),
    service: TimeTrackingService = Depends(get_time_tracking_service),
):
    """Request a correction to a completed entry."""
    try:
        return await service.submit_time_entry_correction(
            time_entry_id=entry_id,
            changes=TimeEntryCorrection(
                clock_in_time=request.clock_in_time,
                clock_out_time=request.clock_out_time,
                notes=request.notes,
            ),
            reason=request.reason,
            requested_by=context.user_id,
            acting_for_employee=context.can_approve,
        )
    except TimeTrackingError as e:
        raise to_http_exception(e)


@router.post("/entries/{entry_id}/approve", response_model=TimeEntry)
async def approve_entry(
    entry_id: str,
    request: ApproveRequest,
    context: PermissionContext = Depends(get_permission_context),
    service: TimeTrackingService = Depends(get_time_tracking_service),
):
    """Approve a pending entry or correction (approvers only)."""
    require_approver(context)
    try:
        return await service.approve_time_entry(
            time_entry_id=entry_id,
            approved_by=context.user_id,
            notes=request.notes,
        )
    except TimeTrackingError as e:
        raise to_http_exception(e)


@router.post("/entries/{entry_id}/reject")
async def reject_entry(
    entry_id: str,
    request: RejectRequest,
    context: PermissionContext = Depends(get_permission_context),
    service: TimeTrackingService = Depends(get_time_tracking_service),
):
    """
    Reject a pending entry or correction (approvers only).

    - Manual entries are deleted
    - Corrections are reverted
    """
    require_approver(context)
    try:
        restored = await service.reject_time_entry(
            time_entry_id=entry_id,
            rejected_by=context.user_id,
            reason=request.reason,
            notes=request.notes,
        )
    except TimeTrackingError as e:
        raise to_http_exception(e)

    if restored is None:
        return {"deleted": True, "id": entry_id}
    return {"deleted": False, "entry": entry_payload(restored, context)}


@router.get("/approvals/pending")
async def get_pending_approvals(
    employee_id: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1),
    context: PermissionContext = Depends(get_permission_context),
    service: TimeTrackingService = Depends(get_time_tracking_service),
):
    """List entries awaiting approval (approvers only)."""
    require_approver(context)
    result = await service.get_pending_approvals(
        employee_id=employee_id,
        pagination=Pagination(page=page, page_size=page_size),
    )
    return {
        "items": [entry_payload(entry, context) for entry in result.items],
        "total": result.total,
        "page": result.page,
        "page_size": result.page_size,
    }
