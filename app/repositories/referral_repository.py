"""
AffiliateReferral repository.

Data access layer for referral codes and their counters.
"""

from decimal import Decimal

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.referral import AffiliateReferral
from app.models.referral_click import AffiliateReferralClick
from app.repositories.base import BaseRepository


class ReferralRepository(BaseRepository[AffiliateReferral]):
    """Referral code repository with counter updates."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral repository."""
        super().__init__(AffiliateReferral, session)

    async def get_active_by_affiliate(
        self, affiliate_id: int
    ) -> AffiliateReferral | None:
        """
        Get the affiliate's active referral code.

        Args:
            affiliate_id: Affiliate user ID

        Returns:
            Active referral or None
        """
        return await self.get_by(affiliate_id=affiliate_id, is_active=True)

    async def get_active_by_code(
        self, referral_code: str
    ) -> AffiliateReferral | None:
        """
        Get an active referral by its public code.

        Args:
            referral_code: Referral code

        Returns:
            Active referral or None
        """
        return await self.get_by(referral_code=referral_code, is_active=True)

    async def increment_clicks(self, referral_id: int) -> None:
        """Atomically add one to total_clicks."""
        stmt = (
            update(AffiliateReferral)
            .where(AffiliateReferral.id == referral_id)
            .values(total_clicks=AffiliateReferral.total_clicks + 1)
        )
        await self.session.execute(stmt)

    async def increment_orders(self, referral_code: str) -> int:
        """
        Atomically add one to total_orders for a code.

        Args:
            referral_code: Referral code stamped on the order

        Returns:
            Number of rows updated (0 if the code is unknown)
        """
        stmt = (
            update(AffiliateReferral)
            .where(AffiliateReferral.referral_code == referral_code)
            .values(total_orders=AffiliateReferral.total_orders + 1)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def set_total_earnings(
        self, affiliate_id: int, total_earnings: Decimal
    ) -> None:
        """Store the informational earnings total on the active code."""
        stmt = (
            update(AffiliateReferral)
            .where(
                AffiliateReferral.affiliate_id == affiliate_id,
                AffiliateReferral.is_active.is_(True),
            )
            .values(total_earnings=total_earnings)
        )
        await self.session.execute(stmt)


class ReferralClickRepository(BaseRepository[AffiliateReferralClick]):
    """Referral click event repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral click repository."""
        super().__init__(AffiliateReferralClick, session)

    async def product_click_counts(
        self, affiliate_id: int
    ) -> list[tuple[int, int]]:
        """
        Count clicks per product for an affiliate.

        Args:
            affiliate_id: Affiliate user ID

        Returns:
            List of (product_id, clicks), most clicked first
        """
        clicks = func.count(AffiliateReferralClick.id).label("clicks")
        stmt = (
            select(AffiliateReferralClick.product_id, clicks)
            .where(
                AffiliateReferralClick.affiliate_id == affiliate_id,
                AffiliateReferralClick.product_id.is_not(None),
            )
            .group_by(AffiliateReferralClick.product_id)
            .order_by(desc(clicks), AffiliateReferralClick.product_id)
        )
        result = await self.session.execute(stmt)
        return [(row.product_id, row.clicks) for row in result.all()]
