"""
Task scheduler.

APScheduler-based periodic task scheduling for background jobs.
"""

import sys
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from loguru import logger

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config.logging import setup_logging  # noqa: E402
from jobs.broker import broker  # noqa: F401, E402
from jobs.tasks.cleanup import cleanup_expired_otps  # noqa: E402
from jobs.tasks.notification_retry import (  # noqa: E402
    process_notification_retries,
)


def create_scheduler() -> AsyncIOScheduler:
    """
    Create and configure task scheduler.

    Returns:
        Configured AsyncIOScheduler instance
    """
    scheduler = AsyncIOScheduler()

    # Notification retry - every 1 minute
    scheduler.add_job(
        process_notification_retries.send,
        trigger=IntervalTrigger(minutes=1),
        id="notification_retry",
        name="Notification Retry Processing",
        replace_existing=True,
    )

    # Expired OTP cleanup - every day at 03:00 UTC
    scheduler.add_job(
        cleanup_expired_otps.send,
        trigger=CronTrigger(hour=3, minute=0),
        id="otp_cleanup",
        name="Expired OTP Cleanup",
        replace_existing=True,
    )

    logger.info("Task scheduler configured with 2 jobs")

    return scheduler


async def start_scheduler() -> AsyncIOScheduler:
    """Start the task scheduler."""
    scheduler = create_scheduler()
    scheduler.start()
    logger.info("Task scheduler started")
    return scheduler


if __name__ == "__main__":
    import asyncio

    async def main():
        setup_logging()
        await start_scheduler()
        # Keep running
        try:
            await asyncio.Event().wait()
        except KeyboardInterrupt:
            logger.info("Scheduler stopped")

    asyncio.run(main())
