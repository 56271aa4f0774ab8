"""Standalone cron runner for download completion polling.

Pulls results for every pending podcast download job from the job system
and reconciles them into the episode registry. Workers that call back over
HTTP make this unnecessary; it covers callbacks that never arrived.

Usage:
    python -m airfeed.cli.poll_downloads

Exit codes:
    0 - Success
    1 - Failure (check logs for details)
"""

import asyncio
import logging
import sys
from datetime import datetime, timezone

from airfeed.services.download_dispatcher import get_job_dispatcher
from airfeed.services.download_reconciler import poll_pending_downloads
from airfeed.utils.db_async import SessionLocal, dispose_engine

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("poll_downloads")


async def main() -> int:
    """Run one polling pass.

    Returns:
        Exit code (0 for success, 1 for failure)
    """
    start_time = datetime.now(timezone.utc)
    logger.info("Starting download completion poll")

    try:
        async with SessionLocal() as db:
            result = await poll_pending_downloads(db, get_job_dispatcher())

        elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()

        logger.info(
            f"Poll complete in {elapsed:.1f}s: "
            f"{result.tasks_checked} checked, "
            f"{result.tasks_completed} completed, "
            f"{result.episodes_ingested} ingested, "
            f"{result.episodes_removed} removed"
        )

        if result.errors:
            for error in result.errors:
                logger.warning(f"Poll error: {error}")

        return 0

    except Exception as e:
        elapsed = (datetime.now(timezone.utc) - start_time).total_seconds()
        logger.error(f"Poll failed after {elapsed:.1f}s: {e}", exc_info=True)
        return 1

    finally:
        await dispose_engine()


if __name__ == "__main__":
    exit_code = asyncio.run(main())
    sys.exit(exit_code)
