"""Audit service - persists before/after records of time tracking changes."""
import logging
from typing import Optional, Protocol

from app.models.audit import AuditChange

logger = logging.getLogger(__name__)


class AuditRecorder(Protocol):
    async def record(self, change: AuditChange) -> None: ...


class AuditService:
    """Writes audit changes to the ``audit_logs`` collection."""

    def __init__(self, db):
        """Initialize service with database connection."""
        self.db = db
        self.audit_logs = db["audit_logs"]

    async def record(self, change: AuditChange) -> None:
        """
        Store one audit change.

        Args:
            change: Entity id, action, before/after values, actor and time
        """
        doc = change.model_dump(mode="json")
        doc["timestamp"] = change.timestamp
        await self.audit_logs.insert_one(doc)
        logger.debug("Audited %s %s by %s", change.action.value, change.entity_id, change.actor_id)

    async def get_entity_history(
        self,
        entity_id: str,
        limit: Optional[int] = None,
    ) -> list[AuditChange]:
        """
        List audit changes for one entity, oldest first.

        Args:
            entity_id: Time entry or break entry ID
            limit: Optional maximum number of records

        Returns:
            List of audit changes
        """
        cursor = self.audit_logs.find({"entity_id": entity_id}).sort("timestamp", 1)
        if limit:
            cursor = cursor.limit(limit)

        docs = await cursor.to_list(length=None)
        return [AuditChange.model_validate(doc) for doc in docs]
