"""Per-employee atomic units of work on MongoDB."""
import asyncio
import logging
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

from pymongo.errors import DuplicateKeyError, OperationFailure

from app.exceptions import ConcurrentModificationError

logger = logging.getLogger(__name__)


class EmployeeLockRegistry:
    """Hands out one ``asyncio.Lock`` per employee id.

    Locks are dropped once no coroutine references them.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, employee_id: str) -> asyncio.Lock:
        lock = self._locks.get(employee_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[employee_id] = lock
        return lock


# Shared by every service instance in this process
employee_locks = EmployeeLockRegistry()


class MongoTransactionManager:
    """
    Runs a block of store calls for one employee as a single transaction.

    In-process callers are queued on the employee's lock. Across processes,
    the transaction first writes the employee's status document, so a second
    concurrent transaction for the same employee hits a write conflict, and
    the partial unique index on ACTIVE entries rejects a duplicate clock-in.
    Both races surface as ``ConcurrentModificationError``; the transaction is
    aborted so nothing partial is persisted.
    """

    def __init__(self, client, db, locks: EmployeeLockRegistry = employee_locks):
        self.client = client
        self.statuses = db["employee_time_status"]
        self.locks = locks

    @asynccontextmanager
    async def atomic(self, employee_id: str) -> AsyncIterator:
        async with self.locks.lock_for(employee_id):
            async with await self.client.start_session() as session:
                try:
                    async with session.start_transaction():
                        await self.statuses.update_one(
                            {"employee_id": employee_id},
                            {"$inc": {"lock_version": 1}},
                            upsert=True,
                            session=session,
                        )
                        yield session
                except DuplicateKeyError as e:
                    logger.warning("Duplicate active entry for employee %s", employee_id)
                    raise ConcurrentModificationError(
                        employee_id, "active time entry already exists"
                    ) from e
                except OperationFailure as e:
                    if not e.has_error_label("TransientTransactionError"):
                        raise
                    logger.warning("Write conflict for employee %s: %s", employee_id, e)
                    raise ConcurrentModificationError(employee_id, "write conflict") from e
