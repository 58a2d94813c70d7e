"""
Notification retry task.

Resends failed affiliate e-mails with backoff (1min, 5min, 15min, 1h,
2h) up to 5 attempts. Runs every minute.
"""

import asyncio

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from app.config.settings import settings
from app.services.notification_retry_service import (
    NotificationRetryService,
)


@dramatiq.actor(max_retries=3, time_limit=300_000)  # 5 min timeout
def process_notification_retries() -> None:
    """Process failed notification retries."""
    logger.info("Starting notification retry processing...")

    try:
        result = asyncio.run(_process_notification_retries_async())

        logger.info(
            f"Notification retry processing complete: "
            f"{result['successful']} successful, "
            f"{result['failed']} failed, "
            f"{result['gave_up']} gave up"
        )

    except Exception as e:
        logger.exception(f"Notification retry processing failed: {e}")


async def _process_notification_retries_async() -> dict:
    """Async implementation of notification retry processing."""
    # Dedicated engine per run; asyncio.run gives each call a new loop
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    try:
        async with session_factory() as session:
            retry_service = NotificationRetryService(session)
            return await retry_service.process_pending_retries()
    finally:
        await engine.dispose()
