#!/usr/bin/env python3
"""Initialize database tables and the platform settings row."""

import asyncio
import sys
from pathlib import Path

from loguru import logger
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.config.logging import setup_logging  # noqa: E402
from app.config.settings import settings  # noqa: E402
from app.models import Base  # noqa: E402
from app.repositories.platform_settings_repository import (  # noqa: E402
    PlatformSettingsRepository,
)


async def init_db() -> None:
    """Create all database tables and default platform settings."""
    logger.info("Creating database tables...")

    engine = create_async_engine(settings.database_url, echo=settings.database_echo)

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        async with session_factory() as session:
            platform_settings = await PlatformSettingsRepository(
                session
            ).ensure_defaults()
    finally:
        await engine.dispose()

    logger.info(
        "Database initialized",
        extra={
            "min_withdrawal": str(
                platform_settings.affiliate_min_withdrawal_threshold
            )
        },
    )


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_db())
