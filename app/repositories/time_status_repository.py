"""Materialized employee time status, rebuilt from entries and breaks."""
from datetime import datetime, timedelta
from typing import Optional

from app.models.time_entry import TimeEntryStatus
from app.models.time_status import EmployeeStatus, EmployeeTimeStatus
from app.repositories.time_entry_repository import to_document
from app.services.time_calculation import round_half_up
from app.utils.time import start_of_day, utcnow


class MongoTimeStatusProjection:
    """
    Status read model stored in ``employee_time_status``.

    ``refresh`` must run in the same transaction as the entry or break write
    that changed the employee's state, so the stored document never drifts
    from the ledger.
    """

    def __init__(self, db):
        """Initialize projection with database connection."""
        self.db = db
        self.statuses = db["employee_time_status"]
        self.time_entries = db["time_entries"]
        self.break_entries = db["break_entries"]

    async def _compute(
        self, employee_id: str, now: datetime, *, session=None
    ) -> EmployeeTimeStatus:
        active = await self.time_entries.find_one(
            {"employee_id": employee_id, "status": TimeEntryStatus.ACTIVE.value},
            session=session,
        )

        open_break: Optional[dict] = None
        if active:
            open_break = await self.break_entries.find_one(
                {"time_entry_id": str(active["_id"]), "end_time": None},
                session=session,
            )

        day_start = start_of_day(now)
        cursor = self.time_entries.find(
            {
                "employee_id": employee_id,
                "status": TimeEntryStatus.COMPLETED.value,
                "clock_in_time": {"$gte": day_start, "$lt": day_start + timedelta(days=1)},
            },
            {"total_hours": 1},
            session=session,
        )
        completed_today = await cursor.to_list(length=None)
        hours_today = sum(doc.get("total_hours") or 0 for doc in completed_today)

        if open_break:
            current_status = EmployeeStatus.ON_BREAK
        elif active:
            current_status = EmployeeStatus.CLOCKED_IN
        else:
            current_status = EmployeeStatus.CLOCKED_OUT

        return EmployeeTimeStatus(
            employee_id=employee_id,
            current_status=current_status,
            active_time_entry_id=str(active["_id"]) if active else None,
            active_break_entry_id=str(open_break["_id"]) if open_break else None,
            last_clock_in_time=active["clock_in_time"] if active else None,
            last_break_start_time=open_break["start_time"] if open_break else None,
            total_hours_today=round_half_up(hours_today),
            last_updated=now,
        )

    async def get_employee_time_status(
        self, employee_id: str, *, now: Optional[datetime] = None, session=None
    ) -> EmployeeTimeStatus:
        """
        Read the stored status for an employee.

        Employees who never had a state change have no document yet (or only
        the lock counter); their status is computed without writing. A
        document last written on an earlier day is recomputed as of ``now``
        so ``total_hours_today`` covers the current day.
        """
        now = now or utcnow()
        doc = await self.statuses.find_one({"employee_id": employee_id}, session=session)

        if not doc or "current_status" not in doc:
            return await self._compute(employee_id, now, session=session)

        status = EmployeeTimeStatus.model_validate(doc)
        if status.last_updated is None or start_of_day(status.last_updated) != start_of_day(now):
            return await self._compute(employee_id, now, session=session)

        return status

    async def refresh(
        self, employee_id: str, now: datetime, *, session=None
    ) -> EmployeeTimeStatus:
        """Recompute and persist the status document."""
        status = await self._compute(employee_id, now, session=session)

        await self.statuses.update_one(
            {"employee_id": employee_id},
            {"$set": to_document(status.model_dump())},
            upsert=True,
            session=session,
        )

        return status
