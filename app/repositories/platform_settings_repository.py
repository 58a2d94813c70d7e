"""
Platform Settings repository.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings as app_settings
from app.models.platform_settings import MAIN_SETTINGS_KEY, PlatformSettings


class PlatformSettingsRepository:
    """Repository for the PlatformSettings singleton row."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository."""
        self.session = session

    async def _get(self) -> PlatformSettings | None:
        stmt = select(PlatformSettings).where(
            PlatformSettings.key == MAIN_SETTINGS_KEY
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_settings(self) -> PlatformSettings:
        """
        Get platform settings.

        Never creates the row; run ensure_defaults() at deploy time.

        Raises:
            SettingsNotInitialized: If the "main" row is missing
        """
        from app.services.exceptions import SettingsNotInitialized

        platform_settings = await self._get()
        if platform_settings is None:
            raise SettingsNotInitialized()
        return platform_settings

    async def ensure_defaults(self) -> PlatformSettings:
        """
        Create the settings row with defaults if it does not exist.

        Returns:
            Existing or newly created settings
        """
        platform_settings = await self._get()
        if platform_settings is not None:
            return platform_settings

        logger.info("Initializing default platform settings")
        platform_settings = PlatformSettings(
            key=MAIN_SETTINGS_KEY,
            affiliate_min_withdrawal_threshold=(
                app_settings.default_min_withdrawal_threshold
            ),
            one_withdrawal_per_month=False,
        )
        self.session.add(platform_settings)
        await self.session.commit()
        await self.session.refresh(platform_settings)
        return platform_settings

    async def get_min_withdrawal_threshold(self) -> Decimal:
        """Minimum amount an affiliate may withdraw."""
        platform_settings = await self.get_settings()
        return Decimal(str(platform_settings.affiliate_min_withdrawal_threshold))

    async def update_settings(
        self,
        affiliate_min_withdrawal_threshold: Decimal | None = None,
        one_withdrawal_per_month: bool | None = None,
    ) -> PlatformSettings:
        """
        Update platform settings.

        Raises:
            ValueError: If a value is out of range
        """
        platform_settings = await self.get_settings()

        if affiliate_min_withdrawal_threshold is not None:
            if affiliate_min_withdrawal_threshold <= 0:
                raise ValueError("Minimum withdrawal must be positive")
            platform_settings.affiliate_min_withdrawal_threshold = (
                affiliate_min_withdrawal_threshold
            )
        if one_withdrawal_per_month is not None:
            platform_settings.one_withdrawal_per_month = one_withdrawal_per_month
        await self.session.commit()
        await self.session.refresh(platform_settings)
        logger.info(
            "Platform settings updated",
            extra={
                "min_withdrawal": str(
                    platform_settings.affiliate_min_withdrawal_threshold
                ),
                "one_per_month": platform_settings.one_withdrawal_per_month,
            },
        )
        return platform_settings
