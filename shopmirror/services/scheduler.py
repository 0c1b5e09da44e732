"""APScheduler setup for the hourly sync job."""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from shopmirror.core.config import get_settings
from shopmirror.services.sync import run_sync

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler: AsyncIOScheduler | None = None


async def run_scheduled_sync():
    """Run a full sync of orders, products and customers."""
    logger.info("Starting scheduled sync job")
    try:
        result = await run_sync()
    except Exception as e:
        # Outcome is already in the sync log when the engine ran; this covers setup failures
        logger.error(f"Scheduled sync failed: {e}")
        return

    if result["skipped"]:
        logger.warning("Scheduled sync skipped: previous run still in progress")
    else:
        logger.info(f"Scheduled sync finished: success={result['success']}")


def start_scheduler():
    """Start the APScheduler."""
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already started")
        return

    settings = get_settings()
    scheduler = AsyncIOScheduler(timezone=settings.tz)

    # Hourly full sync
    scheduler.add_job(
        run_scheduled_sync,
        CronTrigger(minute=settings.sync_minute, timezone=settings.tz),
        id="hourly_sync",
        name="Hourly Shopify sync",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )

    scheduler.start()
    logger.info(f"Scheduler started - hourly sync at minute {settings.sync_minute:02d}")


def stop_scheduler():
    """Stop the APScheduler."""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown()
        scheduler = None
        logger.info("Scheduler stopped")
