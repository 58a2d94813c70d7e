"""
OTP cleanup task.

Deletes payout-detail OTP codes that expired more than a day ago.
"""

import asyncio
from datetime import timedelta

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.config.settings import settings
from app.models.base import utcnow
from app.repositories.payment_method_repository import (
    PaymentMethodOtpRepository,
)

OTP_RETENTION = timedelta(days=1)


async def purge_expired_otps(session: AsyncSession) -> int:
    """
    Delete OTP rows that expired before the retention window.

    Args:
        session: Database session

    Returns:
        Number of deleted rows
    """
    cutoff = utcnow() - OTP_RETENTION
    deleted = await PaymentMethodOtpRepository(session).delete_expired_before(
        cutoff
    )
    await session.commit()

    if deleted:
        logger.info(f"Deleted {deleted} expired payment method OTP codes")
    return deleted


@dramatiq.actor(max_retries=1, time_limit=120_000)
def cleanup_expired_otps() -> None:
    """Purge stale OTP codes."""
    try:
        asyncio.run(_cleanup_expired_otps_async())
    except Exception as e:
        logger.exception(f"OTP cleanup failed: {e}")


async def _cleanup_expired_otps_async() -> int:
    engine = create_async_engine(settings.database_url, pool_pre_ping=True)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    try:
        async with session_factory() as session:
            return await purge_expired_otps(session)
    finally:
        await engine.dispose()
