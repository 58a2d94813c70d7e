"""
Payment method repositories.

Data access layer for payout profiles and their OTP challenges.
"""

from datetime import datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.payment_method import AffiliatePaymentMethod, PaymentMethodOtp
from app.repositories.base import BaseRepository


class PaymentMethodRepository(BaseRepository[AffiliatePaymentMethod]):
    """Payout profile repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize payment method repository."""
        super().__init__(AffiliatePaymentMethod, session)

    async def get_by_affiliate(
        self, affiliate_id: int
    ) -> AffiliatePaymentMethod | None:
        """Get the affiliate's payout profile."""
        return await self.get_by(affiliate_id=affiliate_id)


class PaymentMethodOtpRepository(BaseRepository[PaymentMethodOtp]):
    """OTP challenge repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize OTP repository."""
        super().__init__(PaymentMethodOtp, session)

    async def invalidate_open(self, affiliate_id: int) -> int:
        """
        Mark every unused code of an affiliate as used.

        Args:
            affiliate_id: Affiliate user ID

        Returns:
            Number of invalidated codes
        """
        stmt = (
            update(PaymentMethodOtp)
            .where(
                PaymentMethodOtp.affiliate_id == affiliate_id,
                PaymentMethodOtp.verified.is_(False),
            )
            .values(verified=True)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def get_latest_open(
        self, affiliate_id: int
    ) -> PaymentMethodOtp | None:
        """Get the newest unused code of an affiliate."""
        stmt = (
            select(PaymentMethodOtp)
            .where(
                PaymentMethodOtp.affiliate_id == affiliate_id,
                PaymentMethodOtp.verified.is_(False),
            )
            .order_by(
                PaymentMethodOtp.created_at.desc(),
                PaymentMethodOtp.id.desc(),
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def delete_expired_before(self, cutoff: datetime) -> int:
        """
        Delete codes that expired before a cutoff.

        Args:
            cutoff: Expiry threshold

        Returns:
            Number of deleted rows
        """
        stmt = delete(PaymentMethodOtp).where(
            PaymentMethodOtp.expires_at < cutoff
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0
