"""Store interfaces consumed by the time tracking engine.

Every method accepts an optional ``session`` so that it joins the
transaction opened by ``TransactionManager.atomic``.
"""
from datetime import datetime
from typing import Any, AsyncContextManager, Generic, Optional, Protocol, TypeVar

from pydantic import BaseModel, Field

from app.models.break_entry import BreakEntry
from app.models.time_entry import TimeEntry, TimeEntryStatus
from app.models.time_status import EmployeeTimeStatus

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


class TimeEntryFilter(BaseModel):
    """Filter for listing time entries; date range applies to clock-in."""

    employee_id: Optional[str] = None
    status: Optional[TimeEntryStatus] = None
    manual_entry: Optional[bool] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class Pagination(BaseModel):
    """1-based page number and a clamped page size."""

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1)

    @property
    def limit(self) -> int:
        return min(self.page_size, MAX_PAGE_SIZE)

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


class Page(BaseModel, Generic[T]):
    """One page of results plus the total match count."""

    items: list[T]
    total: int
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE


class TimeEntryRepository(Protocol):
    async def create(self, data: dict[str, Any], *, session=None) -> TimeEntry: ...

    async def update(
        self, entry_id: str, patch: dict[str, Any], *, session=None
    ) -> TimeEntry: ...

    async def delete(self, entry_id: str, *, session=None) -> bool: ...

    async def find_by_id(self, entry_id: str, *, session=None) -> Optional[TimeEntry]: ...

    async def find_all(
        self,
        filters: TimeEntryFilter,
        pagination: Optional[Pagination] = None,
        *,
        session=None,
    ) -> Page[TimeEntry]: ...

    async def find_incomplete_time_entries(
        self, employee_id: str, *, session=None
    ) -> list[TimeEntry]: ...


class BreakEntryRepository(Protocol):
    async def create(self, data: dict[str, Any], *, session=None) -> BreakEntry: ...

    async def update(
        self, break_id: str, patch: dict[str, Any], *, session=None
    ) -> BreakEntry: ...

    async def find_by_id(self, break_id: str, *, session=None) -> Optional[BreakEntry]: ...

    async def find_by_time_entry_id(
        self, time_entry_id: str, *, session=None
    ) -> list[BreakEntry]: ...


class TimeStatusProjection(Protocol):
    async def get_employee_time_status(
        self, employee_id: str, *, now: Optional[datetime] = None, session=None
    ) -> EmployeeTimeStatus: ...

    async def refresh(
        self, employee_id: str, now: datetime, *, session=None
    ) -> EmployeeTimeStatus: ...


class TransactionManager(Protocol):
    def atomic(self, employee_id: str) -> AsyncContextManager[Any]:
        """Serialize work for one employee and run it as one transaction."""
        ...
