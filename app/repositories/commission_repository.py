"""
AffiliateCommission repository.

Data access layer for the commission ledger.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.commission import AffiliateCommission, AffiliateOrderAccrual
from app.models.enums import CommissionStatus
from app.repositories.base import BaseRepository


class CommissionRepository(BaseRepository[AffiliateCommission]):
    """Commission repository with ledger aggregates."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(AffiliateCommission, session)

    async def get_by_order(self, order_id: int) -> list[AffiliateCommission]:
        """Get all commissions accrued for an order."""
        stmt = (
            select(AffiliateCommission)
            .where(AffiliateCommission.order_id == order_id)
            .order_by(AffiliateCommission.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def exists_for_order(self, order_id: int) -> bool:
        """
        Check whether an order has already been accrued.

        The accrual marker is authoritative; commission rows also count
        for orders accrued before markers were written.
        """
        stmt = select(AffiliateOrderAccrual.id).where(
            AffiliateOrderAccrual.order_id == order_id
        )
        result = await self.session.execute(stmt)
        if result.scalar_one_or_none() is not None:
            return True
        return await self.exists(order_id=order_id)

    async def mark_order_accrued(
        self, order_id: int, affiliate_id: int, commission_count: int
    ) -> AffiliateOrderAccrual:
        """Write the accrual marker for an order."""
        accrual = AffiliateOrderAccrual(
            order_id=order_id,
            affiliate_id=affiliate_id,
            commission_count=commission_count,
        )
        self.session.add(accrual)
        await self.session.flush()
        return accrual

    async def sum_by_status(
        self, affiliate_id: int, status: CommissionStatus
    ) -> Decimal:
        """
        Sum commission amounts in one status.

        Args:
            affiliate_id: Affiliate user ID
            status: Commission status

        Returns:
            Total amount (0 when no rows)
        """
        stmt = select(
            func.coalesce(func.sum(AffiliateCommission.commission_amount), 0)
        ).where(
            AffiliateCommission.affiliate_id == affiliate_id,
            AffiliateCommission.status == status.value,
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def totals_by_status(
        self, affiliate_id: int
    ) -> dict[str, tuple[Decimal, int]]:
        """
        Sum and count commissions grouped by status.

        Args:
            affiliate_id: Affiliate user ID

        Returns:
            Mapping status -> (total amount, row count); every status present
        """
        stmt = (
            select(
                AffiliateCommission.status,
                func.coalesce(
                    func.sum(AffiliateCommission.commission_amount), 0
                ),
                func.count(AffiliateCommission.id),
            )
            .where(AffiliateCommission.affiliate_id == affiliate_id)
            .group_by(AffiliateCommission.status)
        )
        result = await self.session.execute(stmt)

        totals = {status.value: (Decimal("0"), 0) for status in CommissionStatus}
        for status, amount, count in result.all():
            totals[status] = (Decimal(str(amount)), count)
        return totals

    def list_query(
        self, affiliate_id: int, status: CommissionStatus | None = None
    ):
        """Build the newest-first listing query for an affiliate."""
        stmt = select(AffiliateCommission).where(
            AffiliateCommission.affiliate_id == affiliate_id
        )
        if status is not None:
            stmt = stmt.where(AffiliateCommission.status == status.value)
        return stmt.order_by(
            AffiliateCommission.created_at.desc(),
            AffiliateCommission.id.desc(),
        )

    async def get_approved_between(
        self, affiliate_id: int, start: datetime, end: datetime
    ) -> list[AffiliateCommission]:
        """
        Get approved commissions created within [start, end].

        Args:
            affiliate_id: Affiliate user ID
            start: Inclusive lower bound
            end: Inclusive upper bound

        Returns:
            Commissions ordered by creation time
        """
        stmt = (
            select(AffiliateCommission)
            .where(
                AffiliateCommission.affiliate_id == affiliate_id,
                AffiliateCommission.status
                == CommissionStatus.APPROVED.value,
                AffiliateCommission.created_at >= start,
                AffiliateCommission.created_at <= end,
            )
            .order_by(AffiliateCommission.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_approved_oldest_first(
        self, affiliate_id: int
    ) -> list[AffiliateCommission]:
        """Get approved commissions in settlement (FIFO) order."""
        stmt = (
            select(AffiliateCommission)
            .where(
                AffiliateCommission.affiliate_id == affiliate_id,
                AffiliateCommission.status
                == CommissionStatus.APPROVED.value,
            )
            .order_by(
                AffiliateCommission.created_at.asc(),
                AffiliateCommission.id.asc(),
            )
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
