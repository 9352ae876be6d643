"""MongoDB store for break entries."""
from datetime import datetime
from typing import Any, Optional

from pymongo import ReturnDocument

from app.exceptions import TimeEntryNotFoundError
from app.models.break_entry import BreakEntry
from app.repositories.time_entry_repository import parse_object_id, to_document


class MongoBreakEntryRepository:
    """Break persistence on the ``break_entries`` collection."""

    def __init__(self, db):
        """Initialize repository with database connection."""
        self.db = db
        self.break_entries = db["break_entries"]

    def _doc_to_break(self, doc: dict) -> BreakEntry:
        return BreakEntry.model_validate({**doc, "_id": str(doc["_id"])})

    async def create(self, data: dict[str, Any], *, session=None) -> BreakEntry:
        now = datetime.utcnow()
        break_doc = {
            "notes": "",
            **to_document(data),
            "created_at": now,
            "updated_at": now,
        }

        result = await self.break_entries.insert_one(break_doc, session=session)
        break_doc["_id"] = result.inserted_id

        return self._doc_to_break(break_doc)

    async def update(
        self, break_id: str, patch: dict[str, Any], *, session=None
    ) -> BreakEntry:
        object_id = parse_object_id(break_id)
        if object_id is None:
            raise TimeEntryNotFoundError(break_id, what="Break entry")

        updated_doc = await self.break_entries.find_one_and_update(
            {"_id": object_id},
            {"$set": {**to_document(patch), "updated_at": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
            session=session,
        )

        if not updated_doc:
            raise TimeEntryNotFoundError(break_id, what="Break entry")

        return self._doc_to_break(updated_doc)

    async def find_by_id(self, break_id: str, *, session=None) -> Optional[BreakEntry]:
        object_id = parse_object_id(break_id)
        if object_id is None:
            return None

        doc = await self.break_entries.find_one({"_id": object_id}, session=session)
        return self._doc_to_break(doc) if doc else None

    async def find_by_time_entry_id(
        self, time_entry_id: str, *, session=None
    ) -> list[BreakEntry]:
        """Breaks of one entry in the order they were taken."""
        cursor = self.break_entries.find(
            {"time_entry_id": time_entry_id}, session=session
        ).sort("start_time", 1)
        break_docs = await cursor.to_list(length=None)
        return [self._doc_to_break(doc) for doc in break_docs]
