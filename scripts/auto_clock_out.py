"""Close time entries left open past the auto clock-out ceiling.

Runs a single sweep and exits; schedule it with cron or similar.

Usage:
    python scripts/auto_clock_out.py
    python scripts/auto_clock_out.py --after-hours 12
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config import settings
from app.database import database
from app.repositories.break_entry_repository import MongoBreakEntryRepository
from app.repositories.time_entry_repository import MongoTimeEntryRepository
from app.repositories.time_status_repository import MongoTimeStatusProjection
from app.repositories.transactions import MongoTransactionManager
from app.services.audit_service import AuditService
from app.services.time_tracking_service import TimeTrackingService

logger = logging.getLogger("auto_clock_out")


async def run_sweep(after_hours: float | None = None) -> int:
    """Connect, sweep stale entries once and return how many were closed."""
    await database.connect()

    try:
        config = settings.time_tracking_config()
        if after_hours is not None:
            config = config.model_copy(update={"auto_clock_out_after_hours": after_hours})

        db = database.db
        service = TimeTrackingService(
            MongoTimeEntryRepository(db),
            MongoBreakEntryRepository(db),
            MongoTimeStatusProjection(db),
            MongoTransactionManager(database.client, db),
            config=config,
            audit=AuditService(db),
        )

        closed = await service.auto_clock_out_stale_entries()
        for entry in closed:
            logger.info(
                "Closed entry %s for employee %s (%s hours)",
                entry.id,
                entry.employee_id,
                entry.total_hours,
            )
        return len(closed)

    finally:
        await database.disconnect()


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Auto clock-out stale time entries")
    parser.add_argument(
        "--after-hours",
        type=float,
        default=None,
        help="Override the configured auto clock-out ceiling (hours)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.after_hours is not None and args.after_hours <= 0:
        logger.error("--after-hours must be positive")
        sys.exit(1)

    count = await run_sweep(args.after_hours)
    logger.info("Auto clock-out sweep finished: %d entries closed", count)


if __name__ == "__main__":
    asyncio.run(main())
