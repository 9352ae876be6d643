"""MongoDB store for time entries."""
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel
from pymongo import ReturnDocument

from app.exceptions import TimeEntryNotFoundError
from app.models.time_entry import TimeEntry
from app.repositories.base import Page, Pagination, TimeEntryFilter


def to_document(values: dict[str, Any]) -> dict[str, Any]:
    """Convert enums and nested models into plain BSON-friendly values."""
    doc = {}
    for key, value in values.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, BaseModel):
            value = value.model_dump(mode="python")
        doc[key] = value
    return doc


def parse_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


class MongoTimeEntryRepository:
    """Time entry persistence on the ``time_entries`` collection."""

    def __init__(self, db):
        """Initialize repository with database connection."""
        self.db = db
        self.time_entries = db["time_entries"]
        self.break_entries = db["break_entries"]

    def _doc_to_entry(self, doc: dict) -> TimeEntry:
        """
        Convert database document to TimeEntry model.
        """
        return TimeEntry.model_validate({**doc, "_id": str(doc["_id"])})

    def _build_query(self, filters: TimeEntryFilter) -> dict:
        query: dict[str, Any] = {}

        if filters.employee_id:
            query["employee_id"] = filters.employee_id
        if filters.status:
            query["status"] = filters.status.value
        if filters.manual_entry is not None:
            query["manual_entry"] = filters.manual_entry

        if filters.start_date or filters.end_date:
            query["clock_in_time"] = {}
            if filters.start_date:
                query["clock_in_time"]["$gte"] = filters.start_date
            if filters.end_date:
                query["clock_in_time"]["$lte"] = filters.end_date

        return query

    async def create(self, data: dict[str, Any], *, session=None) -> TimeEntry:
        """
        Insert a new time entry.

        Args:
            data: Entry fields (without id and timestamps)
            session: Optional session of the enclosing transaction

        Returns:
            Created time entry

        Raises:
            DuplicateKeyError: If the employee already has an ACTIVE entry
        """
        now = datetime.utcnow()
        entry_doc = {
            "break_entries": [],
            "notes": "",
            **to_document(data),
            "created_at": now,
            "updated_at": now,
        }

        result = await self.time_entries.insert_one(entry_doc, session=session)
        entry_doc["_id"] = result.inserted_id

        return self._doc_to_entry(entry_doc)

    async def update(
        self, entry_id: str, patch: dict[str, Any], *, session=None
    ) -> TimeEntry:
        """
        Apply a partial update and return the stored result.

        Raises:
            TimeEntryNotFoundError: If no entry has this id
        """
        object_id = parse_object_id(entry_id)
        if object_id is None:
            raise TimeEntryNotFoundError(entry_id)

        update_doc = {**to_document(patch), "updated_at": datetime.utcnow()}

        updated_doc = await self.time_entries.find_one_and_update(
            {"_id": object_id},
            {"$set": update_doc},
            return_document=ReturnDocument.AFTER,
            session=session,
        )

        if not updated_doc:
            raise TimeEntryNotFoundError(entry_id)

        return self._doc_to_entry(updated_doc)

    async def delete(self, entry_id: str, *, session=None) -> bool:
        """Delete an entry together with the breaks it owns."""
        object_id = parse_object_id(entry_id)
        if object_id is None:
            return False

        await self.break_entries.delete_many({"time_entry_id": entry_id}, session=session)
        result = await self.time_entries.delete_one({"_id": object_id}, session=session)

        return result.deleted_count == 1

    async def find_by_id(self, entry_id: str, *, session=None) -> Optional[TimeEntry]:
        object_id = parse_object_id(entry_id)
        if object_id is None:
            return None

        doc = await self.time_entries.find_one({"_id": object_id}, session=session)
        if not doc:
            return None

        return self._doc_to_entry(doc)

    async def find_all(
        self,
        filters: TimeEntryFilter,
        pagination: Optional[Pagination] = None,
        *,
        session=None,
    ) -> Page[TimeEntry]:
        """
        List entries matching a filter, most recent clock-in first.

        Args:
            filters: Employee / status / date-range filter
            pagination: Page to return; all matches when omitted
            session: Optional session of the enclosing transaction

        Returns:
            Page of entries with the total match count
        """
        query = self._build_query(filters)

        cursor = self.time_entries.find(query, session=session).sort("clock_in_time", -1)
        if pagination:
            cursor = cursor.skip(pagination.skip).limit(pagination.limit)

        entry_docs = await cursor.to_list(length=None)
        total = await self.time_entries.count_documents(query, session=session)

        return Page[TimeEntry](
            items=[self._doc_to_entry(doc) for doc in entry_docs],
            total=total,
            page=pagination.page if pagination else 1,
            page_size=pagination.limit if pagination else max(len(entry_docs), 1),
        )

    async def find_incomplete_time_entries(
        self, employee_id: str, *, session=None
    ) -> list[TimeEntry]:
        """Entries for the employee that were never given a clock-out time."""
        cursor = self.time_entries.find(
            {"employee_id": employee_id, "clock_out_time": None},
            session=session,
        )
        entry_docs = await cursor.to_list(length=None)
        return [self._doc_to_entry(doc) for doc in entry_docs]
