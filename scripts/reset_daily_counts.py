"""
Zero stale daily dump counters.

Meant for a daily cron job shortly after midnight UTC. Limit checks
already read stale counters as zero, so skipping a run never blocks
anyone; this keeps the stored values tidy.

Usage:
    python scripts/reset_daily_counts.py
"""

import asyncio
import logging

from braindump.config.settings import settings
from braindump.domain.services import QuotaService
from braindump.infrastructure.db.database import DatabaseManager
from braindump.infrastructure.db.repositories import ProfileRepository


logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger("reset_daily_counts")


async def main() -> int:
    db = DatabaseManager(settings)
    try:
        async with db.session() as session:
            quota = QuotaService(
                ProfileRepository(session),
                daily_limit=settings.free_daily_dump_limit,
            )
            count = await quota.reset_stale_counters()
    finally:
        await db.close()

    logger.info(f"Reset {count} profile counters")
    return count


if __name__ == "__main__":
    asyncio.run(main())
