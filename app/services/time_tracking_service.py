"""Time tracking service - clock, break and approval workflow for employees.

Every state transition reads the employee's status, validates, writes the
entry/break change and refreshes the status projection inside one
``TransactionManager.atomic`` block, so concurrent requests for the same
employee are serialized and a failed write leaves nothing behind.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Optional

from app.config import TimeTrackingConfig
from app.exceptions import (
    AlreadyClockedInError,
    BreakStateError,
    CorrectionNotAllowedError,
    ExcessiveHoursError,
    FutureTimeError,
    IncompleteEntriesError,
    NotClockedInError,
    TimeEntryConflictError,
    TimeEntryNotFoundError,
    TimeTrackingError,
    TimeValidationError,
)
from app.models.audit import AuditAction, AuditChange
from app.models.break_entry import BreakEntry, BreakType, default_paid
from app.models.time_entry import (
    CorrectionSnapshot,
    GeoLocation,
    ManualBreak,
    ManualEntryCreate,
    PendingCorrection,
    PendingManualCreation,
    TimeEntry,
    TimeEntryCorrection,
    TimeEntryStatus,
)
from app.models.time_status import EmployeeStatus, EmployeeTimeStatus
from app.repositories.base import (
    BreakEntryRepository,
    Page,
    Pagination,
    TimeEntryFilter,
    TimeEntryRepository,
    TimeStatusProjection,
    TransactionManager,
)
from app.services.audit_service import AuditRecorder
from app.services.overlap import find_overlapping_entries
from app.services.time_calculation import (
    HourSplit,
    break_duration_minutes,
    calculate_entry_hours,
)
from app.utils.time import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

TIME_ENTRY = "time_entry"
BREAK_ENTRY = "break_entry"


def _append_note(existing: str, note: Optional[str]) -> str:
    if not note:
        return existing
    return f"{existing}\n{note}" if existing else note


def _snapshot(model) -> dict:
    return model.model_dump(mode="json")


def _latest_break_end(breaks: Iterable[BreakEntry]) -> Optional[datetime]:
    ends = [item.end_time for item in breaks if not item.is_open]
    return max(ends) if ends else None


def _earliest_break_start(breaks: Iterable[BreakEntry]) -> Optional[datetime]:
    return min((item.start_time for item in breaks), default=None)


class TimeTrackingService:
    """Service owning every time entry and break state transition."""

    def __init__(
        self,
        time_entries: TimeEntryRepository,
        break_entries: BreakEntryRepository,
        status_projection: TimeStatusProjection,
        transactions: TransactionManager,
        config: Optional[TimeTrackingConfig] = None,
        audit: Optional[AuditRecorder] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize service with its stores and policy.

        Args:
            time_entries: Time entry store
            break_entries: Break entry store
            status_projection: Employee status read model
            transactions: Provides per-employee atomic units of work
            config: Policy options (defaults apply when omitted)
            audit: Optional recorder receiving before/after of each change
            clock: Returns "now" as naive UTC; injectable for tests
        """
        self.time_entries = time_entries
        self.break_entries = break_entries
        self.status_projection = status_projection
        self.transactions = transactions
        self.config = config or TimeTrackingConfig()
        self.audit = audit
        self._clock = clock or utcnow

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _now(self) -> datetime:
        return self._clock()

    @staticmethod
    def _require_not_future(field: str, value: datetime, now: datetime) -> None:
        if value > now:
            raise FutureTimeError(field, value)

    def _split_hours(
        self,
        clock_in_time: datetime,
        clock_out_time: datetime,
        breaks: Iterable,
    ) -> HourSplit:
        """Hour split for a closed interval, rejecting over-long days."""
        split = calculate_entry_hours(
            clock_in_time,
            clock_out_time,
            breaks,
            self.config.overtime_threshold,
            self.config.double_time_threshold,
        )
        if split.total_hours > self.config.max_daily_hours:
            raise ExcessiveHoursError(split.total_hours, self.config.max_daily_hours)
        return split

    def _validate_closed_interval(
        self, clock_in_time: datetime, clock_out_time: datetime, now: datetime
    ) -> None:
        if clock_out_time <= clock_in_time:
            raise TimeValidationError(
                "Clock out time must be after clock in time", field="clock_out_time"
            )
        self._require_not_future("clock_in_time", clock_in_time, now)
        self._require_not_future("clock_out_time", clock_out_time, now)

    async def _check_overlaps(
        self,
        employee_id: str,
        start: datetime,
        end: Optional[datetime],
        *,
        exclude_id: Optional[str] = None,
        session=None,
    ) -> None:
        """Raise if ``[start, end)`` intersects another entry of the employee."""
        lookback = timedelta(
            hours=max(self.config.max_daily_hours, self.config.auto_clock_out_after_hours) + 24
        )
        page = await self.time_entries.find_all(
            TimeEntryFilter(employee_id=employee_id, start_date=start - lookback, end_date=end),
            session=session,
        )
        candidates = {entry.id: entry for entry in page.items}
        # Open entries older than the lookback window still block the interval
        for entry in await self.time_entries.find_incomplete_time_entries(
            employee_id, session=session
        ):
            candidates[entry.id] = entry

        overlapping = find_overlapping_entries(start, end, candidates.values(), exclude_id)
        if overlapping:
            existing = overlapping[0]
            raise TimeEntryConflictError(
                "Time entry overlaps with existing entry",
                {
                    "existing_entry": {
                        "id": existing.id,
                        "clock_in_time": existing.clock_in_time.isoformat(),
                        "clock_out_time": None
                        if existing.is_open
                        else existing.clock_out_time.isoformat(),
                    }
                },
            )

    async def _audit(
        self,
        entity_type: str,
        entity_id: str,
        action: AuditAction,
        actor_id: str,
        before: Optional[dict] = None,
        after: Optional[dict] = None,
    ) -> None:
        if self.audit is None:
            return
        await self.audit.record(
            AuditChange(
                entity_type=entity_type,
                entity_id=entity_id,
                action=action,
                before=before,
                after=after,
                actor_id=actor_id,
                timestamp=self._now(),
            )
        )

    async def _load_entry(self, time_entry_id: str, *, session=None) -> TimeEntry:
        entry = await self.time_entries.find_by_id(time_entry_id, session=session)
        if entry is None:
            raise TimeEntryNotFoundError(time_entry_id)
        return entry

    async def _active_entry(self, status: EmployeeTimeStatus, *, session=None) -> TimeEntry:
        if not status.active_time_entry_id:
            raise NotClockedInError(status.current_status.value)
        entry = await self.time_entries.find_by_id(status.active_time_entry_id, session=session)
        if entry is None:
            raise TimeEntryNotFoundError(status.active_time_entry_id, what="Active time entry")
        return entry

    async def _close_entry(
        self,
        entry: TimeEntry,
        clock_out_time: datetime,
        *,
        notes: Optional[str] = None,
        location: Optional[GeoLocation] = None,
        session=None,
    ) -> TimeEntry:
        """Set the clock-out time, compute hours and complete the entry."""
        if clock_out_time <= entry.clock_in_time:
            raise TimeValidationError(
                "Clock out time must be after clock in time", field="clock_out_time"
            )

        breaks = await self.break_entries.find_by_time_entry_id(entry.id, session=session)
        last_break_end = _latest_break_end(breaks)
        if last_break_end and clock_out_time < last_break_end:
            raise TimeValidationError(
                "Clock out time must not be before the last break ended",
                field="clock_out_time",
            )

        split = self._split_hours(entry.clock_in_time, clock_out_time, breaks)

        patch = {
            "clock_out_time": clock_out_time,
            "status": TimeEntryStatus.COMPLETED,
            "notes": _append_note(entry.notes, notes),
            **split.as_fields(),
        }
        if location is not None:
            patch["clock_out_location"] = location

        return await self.time_entries.update(entry.id, patch, session=session)

    # ------------------------------------------------------------------
    # Clock and break transitions
    # ------------------------------------------------------------------

    async def clock_in(
        self,
        employee_id: str,
        clock_in_time: Optional[datetime] = None,
        location: Optional[GeoLocation] = None,
        notes: Optional[str] = None,
    ) -> TimeEntry:
        """
        Clock in an employee.

        Args:
            employee_id: Employee ID
            clock_in_time: Optional clock-in time (defaults to now)
            location: Optional coordinates (required if configured)
            notes: Optional free text

        Returns:
            Created ACTIVE time entry

        Raises:
            TimeValidationError: Future time or missing location
            ClockStateError: Already clocked in, or unclosed entries exist
            TimeEntryConflictError: Back-dated clock-in overlaps an entry
        """
        now = self._now()
        clock_in_time = to_naive_utc(clock_in_time) or now

        if not self.config.allow_future_clock_in:
            self._require_not_future("clock_in_time", clock_in_time, now)
        if self.config.require_location and location is None:
            raise TimeValidationError("Location is required for clock in", field="location")

        async with self.transactions.atomic(employee_id) as session:
            status = await self.status_projection.get_employee_time_status(
                employee_id, now=now, session=session
            )
            if status.current_status != EmployeeStatus.CLOCKED_OUT:
                raise AlreadyClockedInError(
                    status.current_status.value, status.active_time_entry_id
                )

            incomplete = await self.time_entries.find_incomplete_time_entries(
                employee_id, session=session
            )
            if incomplete:
                raise IncompleteEntriesError([entry.id for entry in incomplete])

            await self._check_overlaps(employee_id, clock_in_time, None, session=session)

            entry = await self.time_entries.create(
                {
                    "employee_id": employee_id,
                    "clock_in_time": clock_in_time,
                    "status": TimeEntryStatus.ACTIVE,
                    "manual_entry": False,
                    "location": location,
                    "notes": notes or "",
                },
                session=session,
            )
            await self.status_projection.refresh(employee_id, now, session=session)

        logger.info("Employee %s clocked in (entry %s)", employee_id, entry.id)
        await self._audit(TIME_ENTRY, entry.id, AuditAction.CLOCK_IN, employee_id, after=_snapshot(entry))
        return entry

    async def clock_out(
        self,
        employee_id: str,
        clock_out_time: Optional[datetime] = None,
        location: Optional[GeoLocation] = None,
        notes: Optional[str] = None,
    ) -> TimeEntry:
        """
        Clock out an employee and compute the hour split.

        Returns:
            COMPLETED time entry with total/regular/overtime hours

        Raises:
            TimeValidationError: Future time, bad ordering, too many hours
            ClockStateError: Not clocked in, or still on break
        """
        now = self._now()
        clock_out_time = to_naive_utc(clock_out_time) or now
        self._require_not_future("clock_out_time", clock_out_time, now)

        async with self.transactions.atomic(employee_id) as session:
            status = await self.status_projection.get_employee_time_status(
                employee_id, now=now, session=session
            )
            if status.current_status == EmployeeStatus.ON_BREAK:
                raise BreakStateError(
                    "Cannot clock out while on break. End break first.",
                    status.current_status.value,
                )
            if status.current_status != EmployeeStatus.CLOCKED_IN:
                raise NotClockedInError(status.current_status.value)

            entry = await self._active_entry(status, session=session)
            closed = await self._close_entry(
                entry, clock_out_time, notes=notes, location=location, session=session
            )
            await self.status_projection.refresh(employee_id, now, session=session)

        logger.info(
            "Employee %s clocked out (entry %s, %s hours)",
            employee_id,
            closed.id,
            closed.total_hours,
        )
        await self._audit(
            TIME_ENTRY, closed.id, AuditAction.CLOCK_OUT, employee_id,
            before=_snapshot(entry), after=_snapshot(closed),
        )
        return closed

    async def start_break(
        self,
        employee_id: str,
        break_type: BreakType,
        start_time: Optional[datetime] = None,
        paid: Optional[bool] = None,
        notes: Optional[str] = None,
    ) -> BreakEntry:
        """
        Start a break under the employee's active entry.

        Args:
            employee_id: Employee ID
            break_type: Kind of break; decides the default paid flag
            start_time: Optional start time (defaults to now)
            paid: Overrides the break type's default when given
            notes: Optional free text

        Returns:
            Created open break entry
        """
        now = self._now()
        start_time = to_naive_utc(start_time) or now
        self._require_not_future("start_time", start_time, now)

        async with self.transactions.atomic(employee_id) as session:
            status = await self.status_projection.get_employee_time_status(
                employee_id, now=now, session=session
            )
            if status.current_status == EmployeeStatus.ON_BREAK:
                raise BreakStateError("Already on break", status.current_status.value)
            if status.current_status != EmployeeStatus.CLOCKED_IN:
                raise NotClockedInError(status.current_status.value)

            entry = await self._active_entry(status, session=session)
            if start_time <= entry.clock_in_time:
                raise TimeValidationError(
                    "Break start time must be after clock in time", field="start_time"
                )

            previous = await self.break_entries.find_by_time_entry_id(entry.id, session=session)
            last_break_end = _latest_break_end(previous)
            if last_break_end and start_time < last_break_end:
                raise TimeValidationError(
                    "Break start time must not be before the previous break ended",
                    field="start_time",
                )

            break_entry = await self.break_entries.create(
                {
                    "time_entry_id": entry.id,
                    "break_type": break_type,
                    "start_time": start_time,
                    "paid": default_paid(break_type) if paid is None else paid,
                    "notes": notes or "",
                },
                session=session,
            )
            await self.time_entries.update(
                entry.id,
                {"break_entries": [*entry.break_entries, break_entry.id]},
                session=session,
            )
            await self.status_projection.refresh(employee_id, now, session=session)

        logger.info("Employee %s started %s break", employee_id, break_type.value)
        await self._audit(
            BREAK_ENTRY, break_entry.id, AuditAction.BREAK_START, employee_id,
            after=_snapshot(break_entry),
        )
        return break_entry

    async def end_break(
        self,
        employee_id: str,
        end_time: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> BreakEntry:
        """
        End the employee's open break and record its duration in minutes.
        """
        now = self._now()
        end_time = to_naive_utc(end_time) or now
        self._require_not_future("end_time", end_time, now)

        async with self.transactions.atomic(employee_id) as session:
            status = await self.status_projection.get_employee_time_status(
                employee_id, now=now, session=session
            )
            if status.current_status != EmployeeStatus.ON_BREAK or not status.active_break_entry_id:
                raise BreakStateError(
                    f"Cannot end break. Current status: {status.current_status.value}",
                    status.current_status.value,
                )

            break_entry = await self.break_entries.find_by_id(
                status.active_break_entry_id, session=session
            )
            if break_entry is None:
                raise TimeEntryNotFoundError(status.active_break_entry_id, what="Break entry")

            if end_time <= break_entry.start_time:
                raise TimeValidationError(
                    "Break end time must be after start time", field="end_time"
                )

            ended = await self.break_entries.update(
                break_entry.id,
                {
                    "end_time": end_time,
                    "duration_minutes": break_duration_minutes(break_entry.start_time, end_time),
                    "notes": _append_note(break_entry.notes, notes),
                },
                session=session,
            )
            await self.status_projection.refresh(employee_id, now, session=session)

        logger.info("Employee %s ended break (%s min)", employee_id, ended.duration_minutes)
        await self._audit(
            BREAK_ENTRY, ended.id, AuditAction.BREAK_END, employee_id,
            before=_snapshot(break_entry), after=_snapshot(ended),
        )
        return ended

    async def get_current_status(self, employee_id: str) -> EmployeeTimeStatus:
        """Read the employee's status projection; no side effects."""
        return await self.status_projection.get_employee_time_status(
            employee_id, now=self._now()
        )

    # ------------------------------------------------------------------
    # Manual entries, corrections and approvals
    # ------------------------------------------------------------------

    def _resolve_manual_breaks(
        self, breaks: list[ManualBreak], clock_in_time: datetime, clock_out_time: datetime
    ) -> list[ManualBreak]:
        resolved = []
        previous_end: Optional[datetime] = None
        for item in sorted(breaks, key=lambda b: to_naive_utc(b.start_time)):
            start = to_naive_utc(item.start_time)
            end = to_naive_utc(item.end_time)
            if start <= clock_in_time or end > clock_out_time:
                raise TimeValidationError(
                    "Breaks must fall within the entry's clock in and clock out times",
                    field="breaks",
                )
            if previous_end and start < previous_end:
                raise TimeValidationError("Breaks must not overlap", field="breaks")
            previous_end = end
            paid = default_paid(item.break_type) if item.paid is None else item.paid
            resolved.append(
                item.model_copy(update={"start_time": start, "end_time": end, "paid": paid})
            )
        return resolved

    async def submit_manual_entry(self, data: ManualEntryCreate) -> TimeEntry:
        """
        Submit a manual time entry for a missed clock-in/out.

        The entry is created PENDING_APPROVAL (hours unset) when approval is
        required, otherwise COMPLETED with hours computed like a clock-out.

        Raises:
            TimeValidationError: Bad ordering, future, too old, too many hours
            TimeEntryConflictError: Interval overlaps an existing entry
        """
        now = self._now()
        clock_in_time = to_naive_utc(data.clock_in_time)
        clock_out_time = to_naive_utc(data.clock_out_time)
        self._validate_closed_interval(clock_in_time, clock_out_time, now)

        max_days = self.config.max_past_days_for_manual_entry
        if clock_in_time < now - timedelta(days=max_days):
            raise TimeValidationError(
                f"Cannot create manual entry more than {max_days} days in the past",
                field="clock_in_time",
            )

        breaks = self._resolve_manual_breaks(data.breaks, clock_in_time, clock_out_time)
        split = self._split_hours(clock_in_time, clock_out_time, breaks)
        needs_approval = self.config.require_approval_for_manual_entry

        entry_data = {
            "employee_id": data.employee_id,
            "clock_in_time": clock_in_time,
            "clock_out_time": clock_out_time,
            "manual_entry": True,
            "notes": _append_note(f"Manual entry - Reason: {data.reason}", data.notes),
        }
        if needs_approval:
            entry_data["status"] = TimeEntryStatus.PENDING_APPROVAL
            entry_data["pending_change"] = PendingManualCreation(
                reason=data.reason,
                requested_by=data.submitted_by,
                requested_at=now,
            )
        else:
            entry_data["status"] = TimeEntryStatus.COMPLETED
            entry_data.update(split.as_fields())

        async with self.transactions.atomic(data.employee_id) as session:
            await self._check_overlaps(
                data.employee_id, clock_in_time, clock_out_time, session=session
            )

            entry = await self.time_entries.create(entry_data, session=session)

            break_ids = []
            for item in breaks:
                created = await self.break_entries.create(
                    {
                        "time_entry_id": entry.id,
                        "break_type": item.break_type,
                        "start_time": item.start_time,
                        "end_time": item.end_time,
                        "paid": item.paid,
                        "duration_minutes": break_duration_minutes(item.start_time, item.end_time),
                    },
                    session=session,
                )
                break_ids.append(created.id)
            if break_ids:
                entry = await self.time_entries.update(
                    entry.id, {"break_entries": break_ids}, session=session
                )

            await self.status_projection.refresh(data.employee_id, now, session=session)

        logger.info(
            "Manual entry %s submitted for employee %s by %s (%s)",
            entry.id,
            data.employee_id,
            data.submitted_by,
            entry.status.value,
        )
        await self._audit(
            TIME_ENTRY, entry.id, AuditAction.MANUAL_ENTRY, data.submitted_by,
            after=_snapshot(entry),
        )
        return entry

    async def submit_time_entry_correction(
        self,
        time_entry_id: str,
        changes: TimeEntryCorrection,
        reason: str,
        requested_by: str,
        *,
        acting_for_employee: bool = False,
    ) -> TimeEntry:
        """
        Request a correction to a completed time entry.

        Args:
            time_entry_id: Entry to correct
            changes: New clock-in/clock-out times and/or notes
            reason: Why the correction is needed
            requested_by: User requesting it
            acting_for_employee: Caller is authorized to act on the owner

        Returns:
            The entry in PENDING_APPROVAL holding the requested values, or the
            corrected COMPLETED entry when corrections need no approval

        Raises:
            CorrectionNotAllowedError: Entry belongs to someone else
            TimeEntryConflictError: Wrong state or overlap with another entry
            TimeValidationError: Invalid resulting interval
        """
        if changes.is_empty():
            raise TimeValidationError("Correction must change at least one field")
        if not reason:
            raise TimeValidationError("Correction reason is required", field="reason")

        now = self._now()
        existing = await self._load_entry(time_entry_id)
        if existing.employee_id != requested_by and not acting_for_employee:
            raise CorrectionNotAllowedError()

        async with self.transactions.atomic(existing.employee_id) as session:
            entry = await self._load_entry(time_entry_id, session=session)
            if entry.status == TimeEntryStatus.PENDING_APPROVAL:
                raise TimeEntryConflictError(
                    "Cannot correct entry that is pending approval",
                    {"status": entry.status.value},
                )
            if entry.status != TimeEntryStatus.COMPLETED:
                raise TimeEntryConflictError(
                    "Only completed entries can be corrected",
                    {"status": entry.status.value},
                )

            clock_in_time = to_naive_utc(changes.clock_in_time) or entry.clock_in_time
            clock_out_time = to_naive_utc(changes.clock_out_time) or entry.clock_out_time
            self._validate_closed_interval(clock_in_time, clock_out_time, now)

            breaks = await self.break_entries.find_by_time_entry_id(entry.id, session=session)
            first_break_start = _earliest_break_start(breaks)
            if first_break_start and clock_in_time >= first_break_start:
                raise TimeValidationError(
                    "Clock in time must be before the first break started",
                    field="clock_in_time",
                )
            last_break_end = _latest_break_end(breaks)
            if last_break_end and clock_out_time < last_break_end:
                raise TimeValidationError(
                    "Clock out time must not be before the last break ended",
                    field="clock_out_time",
                )
            split = self._split_hours(clock_in_time, clock_out_time, breaks)

            await self._check_overlaps(
                entry.employee_id,
                clock_in_time,
                clock_out_time,
                exclude_id=entry.id,
                session=session,
            )

            patch = {"clock_in_time": clock_in_time, "clock_out_time": clock_out_time}
            if changes.notes is not None:
                patch["notes"] = changes.notes

            if self.config.require_approval_for_correction:
                action = AuditAction.CORRECTION_REQUEST
                patch.update(
                    status=TimeEntryStatus.PENDING_APPROVAL,
                    total_hours=None,
                    regular_hours=None,
                    overtime_hours=None,
                    double_time_hours=None,
                    pending_change=PendingCorrection(
                        reason=reason,
                        requested_by=requested_by,
                        requested_at=now,
                        previous=CorrectionSnapshot(
                            clock_in_time=entry.clock_in_time,
                            clock_out_time=entry.clock_out_time,
                            notes=entry.notes,
                            total_hours=entry.total_hours,
                            regular_hours=entry.regular_hours,
                            overtime_hours=entry.overtime_hours,
                            double_time_hours=entry.double_time_hours,
                        ),
                    ),
                )
            else:
                action = AuditAction.CORRECTION_APPLIED
                patch.update(split.as_fields())
                patch["notes"] = _append_note(
                    patch.get("notes", entry.notes),
                    f"Corrected - Reason: {reason}\nBy: {requested_by}",
                )

            updated = await self.time_entries.update(entry.id, patch, session=session)
            await self.status_projection.refresh(entry.employee_id, now, session=session)

        logger.info("Correction on entry %s by %s (%s)", entry.id, requested_by, action.value)
        await self._audit(
            TIME_ENTRY, updated.id, action, requested_by,
            before=_snapshot(entry), after=_snapshot(updated),
        )
        return updated

    async def approve_time_entry(
        self,
        time_entry_id: str,
        approved_by: str,
        notes: Optional[str] = None,
    ) -> TimeEntry:
        """
        Approve a pending manual entry or correction.

        Hours are recomputed exactly as on clock-out.

        Raises:
            TimeEntryConflictError: Entry is not pending approval
            TimeValidationError: The approved interval exceeds max daily hours
        """
        now = self._now()
        existing = await self._load_entry(time_entry_id)

        async with self.transactions.atomic(existing.employee_id) as session:
            entry = await self._load_entry(time_entry_id, session=session)
            if entry.status != TimeEntryStatus.PENDING_APPROVAL:
                raise TimeEntryConflictError(
                    "Time entry is not pending approval", {"status": entry.status.value}
                )

            breaks = await self.break_entries.find_by_time_entry_id(entry.id, session=session)
            split = self._split_hours(entry.clock_in_time, entry.clock_out_time, breaks)

            approved = await self.time_entries.update(
                entry.id,
                {
                    "status": TimeEntryStatus.COMPLETED,
                    "approved_by": approved_by,
                    "approved_at": now,
                    "pending_change": None,
                    "notes": _append_note(
                        entry.notes,
                        f"Approved by: {approved_by}" + (f"\nApproval notes: {notes}" if notes else ""),
                    ),
                    **split.as_fields(),
                },
                session=session,
            )
            await self.status_projection.refresh(entry.employee_id, now, session=session)

        logger.info("Time entry %s approved by %s", entry.id, approved_by)
        await self._audit(
            TIME_ENTRY, approved.id, AuditAction.APPROVE, approved_by,
            before=_snapshot(entry), after=_snapshot(approved),
        )
        return approved

    async def reject_time_entry(
        self,
        time_entry_id: str,
        rejected_by: str,
        reason: str,
        notes: Optional[str] = None,
    ) -> Optional[TimeEntry]:
        """
        Reject a pending manual entry or correction.

        A pending manual creation is deleted together with its breaks and
        ``None`` is returned. A pending correction is discarded: the entry's
        previous values are restored and it returns to COMPLETED.

        Raises:
            TimeEntryConflictError: Entry is not pending approval
        """
        now = self._now()
        existing = await self._load_entry(time_entry_id)

        async with self.transactions.atomic(existing.employee_id) as session:
            entry = await self._load_entry(time_entry_id, session=session)
            if entry.status != TimeEntryStatus.PENDING_APPROVAL:
                raise TimeEntryConflictError(
                    "Time entry is not pending approval", {"status": entry.status.value}
                )

            pending = entry.pending_change
            if isinstance(pending, PendingManualCreation):
                await self.time_entries.delete(entry.id, session=session)
                restored = None
            elif isinstance(pending, PendingCorrection):
                previous = pending.previous
                restored = await self.time_entries.update(
                    entry.id,
                    {
                        "status": TimeEntryStatus.COMPLETED,
                        "clock_in_time": previous.clock_in_time,
                        "clock_out_time": previous.clock_out_time,
                        "total_hours": previous.total_hours,
                        "regular_hours": previous.regular_hours,
                        "overtime_hours": previous.overtime_hours,
                        "double_time_hours": previous.double_time_hours,
                        "notes": _append_note(
                            previous.notes,
                            f"Correction REJECTED by: {rejected_by}\nReason: {reason}"
                            + (f"\nAdditional notes: {notes}" if notes else ""),
                        ),
                        "pending_change": None,
                        "rejected_by": rejected_by,
                        "rejected_at": now,
                        "rejection_reason": reason,
                    },
                    session=session,
                )
            else:
                raise TimeEntryConflictError(
                    "Pending entry has no recorded change to reject", {"id": entry.id}
                )

            await self.status_projection.refresh(entry.employee_id, now, session=session)

        logger.info(
            "Time entry %s rejected by %s (%s)",
            entry.id,
            rejected_by,
            "deleted" if restored is None else "reverted",
        )
        await self._audit(
            TIME_ENTRY, entry.id, AuditAction.REJECT, rejected_by,
            before=_snapshot(entry),
            after=_snapshot(restored) if restored else None,
        )
        return restored

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_time_entry(self, time_entry_id: str) -> TimeEntry:
        """
        Get a single time entry.

        Args:
            time_entry_id: Entry ID

        Returns:
            The time entry

        Raises:
            TimeEntryNotFoundError: No entry with that ID
        """
        return await self._load_entry(time_entry_id)

    async def list_time_entries(
        self,
        filters: TimeEntryFilter,
        pagination: Optional[Pagination] = None,
    ) -> Page[TimeEntry]:
        """
        List time entries matching the filters, newest clock-in first.

        Args:
            filters: Employee, status, manual flag and clock-in date range
            pagination: Page and page size (first page of defaults if omitted)

        Returns:
            One page of entries with the total match count
        """
        return await self.time_entries.find_all(filters, pagination or Pagination())

    async def get_pending_approvals(
        self,
        employee_id: Optional[str] = None,
        pagination: Optional[Pagination] = None,
    ) -> Page[TimeEntry]:
        """
        Get entries waiting for a manager decision.

        Args:
            employee_id: Optional employee to restrict to
            pagination: Page and page size (first page of defaults if omitted)

        Returns:
            One page of PENDING_APPROVAL entries, manual creations and
            corrections alike
        """
        return await self.time_entries.find_all(
            TimeEntryFilter(employee_id=employee_id, status=TimeEntryStatus.PENDING_APPROVAL),
            pagination or Pagination(),
        )

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    async def _force_clock_out(self, entry_id: str, employee_id: str) -> Optional[TimeEntry]:
        """Close one stale entry at clock-in + the configured ceiling."""
        now = self._now()
        ceiling = timedelta(hours=self.config.auto_clock_out_after_hours)

        async with self.transactions.atomic(employee_id) as session:
            entry = await self.time_entries.find_by_id(entry_id, session=session)
            if entry is None or entry.status != TimeEntryStatus.ACTIVE:
                # Closed by the employee since the sweep listed it
                return None

            clock_out_time = entry.clock_in_time + ceiling

            status = await self.status_projection.get_employee_time_status(
                employee_id, now=now, session=session
            )
            if status.current_status == EmployeeStatus.ON_BREAK and status.active_break_entry_id:
                open_break = await self.break_entries.find_by_id(
                    status.active_break_entry_id, session=session
                )
                if open_break is not None and open_break.is_open:
                    if open_break.start_time >= clock_out_time:
                        raise BreakStateError(
                            "Open break started after the auto clock-out time",
                            status.current_status.value,
                        )
                    await self.break_entries.update(
                        open_break.id,
                        {
                            "end_time": clock_out_time,
                            "duration_minutes": break_duration_minutes(
                                open_break.start_time, clock_out_time
                            ),
                        },
                        session=session,
                    )

            closed = await self._close_entry(
                entry,
                clock_out_time,
                notes=f"Auto-clocked out after {self.config.auto_clock_out_after_hours:g} hours",
                session=session,
            )
            await self.status_projection.refresh(employee_id, now, session=session)

        await self._audit(
            TIME_ENTRY, closed.id, AuditAction.AUTO_CLOCK_OUT, SYSTEM_ACTOR,
            before=_snapshot(entry), after=_snapshot(closed),
        )
        return closed

    async def auto_clock_out_stale_entries(self) -> list[TimeEntry]:
        """
        Close ACTIVE entries open longer than ``auto_clock_out_after_hours``.

        Each stale entry is clocked out at ``clock_in_time`` plus the ceiling,
        using the same validation and hour split as a normal clock-out. An
        entry that fails validation is logged and left for a human; the sweep
        carries on with the rest.

        Returns:
            Entries that were closed by this sweep
        """
        now = self._now()
        ceiling = timedelta(hours=self.config.auto_clock_out_after_hours)

        page = await self.time_entries.find_all(
            TimeEntryFilter(status=TimeEntryStatus.ACTIVE, end_date=now - ceiling)
        )

        closed_entries = []
        for entry in page.items:
            if now - entry.clock_in_time <= ceiling:
                continue
            try:
                closed = await self._force_clock_out(entry.id, entry.employee_id)
            except TimeTrackingError as e:
                logger.warning("Failed to auto-clock-out entry %s: %s", entry.id, e.message)
                continue
            if closed is not None:
                logger.info("Auto-clocked out entry %s for employee %s", closed.id, closed.employee_id)
                closed_entries.append(closed)

        return closed_entries
