"""
AffiliateWithdrawal repository.

Data access layer for withdrawal requests.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import WithdrawalStatus
from app.models.withdrawal import AffiliateWithdrawal
from app.repositories.base import BaseRepository

IN_FLIGHT_STATUSES = (
    WithdrawalStatus.PENDING.value,
    WithdrawalStatus.APPROVED.value,
)


class WithdrawalRepository(BaseRepository[AffiliateWithdrawal]):
    """Withdrawal repository with balance aggregates."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal repository."""
        super().__init__(AffiliateWithdrawal, session)

    async def _sum_amounts(
        self, affiliate_id: int, statuses: tuple[str, ...]
    ) -> Decimal:
        stmt = select(
            func.coalesce(func.sum(AffiliateWithdrawal.amount), 0)
        ).where(
            AffiliateWithdrawal.affiliate_id == affiliate_id,
            AffiliateWithdrawal.status.in_(statuses),
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def sum_in_flight(self, affiliate_id: int) -> Decimal:
        """
        Sum pending and approved withdrawals.

        Args:
            affiliate_id: Affiliate user ID

        Returns:
            Amount still reserved against the balance
        """
        return await self._sum_amounts(affiliate_id, IN_FLIGHT_STATUSES)

    async def sum_paid(self, affiliate_id: int) -> Decimal:
        """Sum withdrawals already paid out."""
        return await self._sum_amounts(
            affiliate_id, (WithdrawalStatus.PAID.value,)
        )

    async def exists_since(self, affiliate_id: int, since: datetime) -> bool:
        """Check whether the affiliate requested a withdrawal since a time."""
        stmt = (
            select(AffiliateWithdrawal.id)
            .where(
                AffiliateWithdrawal.affiliate_id == affiliate_id,
                AffiliateWithdrawal.created_at >= since,
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    def list_query(
        self,
        affiliate_id: int | None = None,
        status: WithdrawalStatus | None = None,
        newest_first: bool = True,
    ):
        """Build a withdrawal listing query."""
        stmt = select(AffiliateWithdrawal)
        if affiliate_id is not None:
            stmt = stmt.where(AffiliateWithdrawal.affiliate_id == affiliate_id)
        if status is not None:
            stmt = stmt.where(AffiliateWithdrawal.status == status.value)
        if newest_first:
            return stmt.order_by(
                AffiliateWithdrawal.created_at.desc(),
                AffiliateWithdrawal.id.desc(),
            )
        return stmt.order_by(
            AffiliateWithdrawal.created_at.asc(),
            AffiliateWithdrawal.id.asc(),
        )
