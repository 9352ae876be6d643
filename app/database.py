"""MongoDB database connection using Motor (async driver)."""
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, IndexModel

from app.config import settings

logger = logging.getLogger(__name__)


TIME_ENTRY_INDEXES = [
    IndexModel([("employee_id", ASCENDING), ("clock_in_time", DESCENDING)]),
    IndexModel([("status", ASCENDING), ("clock_in_time", ASCENDING)]),
    # At most one ACTIVE entry per employee, enforced by the server
    IndexModel(
        [("employee_id", ASCENDING)],
        name="one_active_entry_per_employee",
        unique=True,
        partialFilterExpression={"status": "ACTIVE"},
    ),
]


class Database:
    """MongoDB database connection manager."""

    client: AsyncIOMotorClient | None = None
    db: AsyncIOMotorDatabase | None = None

    async def connect(self) -> None:
        """Connect to MongoDB (a replica set, transactions are required)."""
        self.client = AsyncIOMotorClient(settings.mongodb_url, tz_aware=False)
        self.db = self.client[settings.mongodb_db_name]
        logger.info("Connected to MongoDB: %s", settings.mongodb_db_name)

    async def disconnect(self) -> None:
        """Disconnect from MongoDB."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def ensure_indexes(self) -> None:
        """Create the indexes the time tracking invariants rely on."""
        if self.db is None:
            raise RuntimeError("Database not connected")

        await self.db["time_entries"].create_indexes(TIME_ENTRY_INDEXES)
        await self.db["break_entries"].create_index(
            [("time_entry_id", ASCENDING), ("start_time", ASCENDING)]
        )
        await self.db["employee_time_status"].create_index("employee_id", unique=True)
        await self.db["audit_logs"].create_index(
            [("entity_id", ASCENDING), ("timestamp", DESCENDING)]
        )
        logger.info("Time tracking indexes ensured")


# Global database instance
database = Database()


async def get_database() -> AsyncIOMotorDatabase:
    """Dependency to get database instance."""
    if database.db is None:
        raise RuntimeError("Database not connected")
    return database.db
