"""
Commission service.

The affiliate commission ledger: accrual when an attributed order is
placed, reclassification when the order changes status, listings and
FIFO settlement when a withdrawal is paid.
"""

from collections import OrderedDict
from datetime import datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import as_utc
from app.models.commission import AffiliateCommission
from app.models.enums import CommissionStatus, OrderStatus
from app.repositories.commission_repository import CommissionRepository
from app.repositories.order_repository import OrderRepository
from app.repositories.product_repository import ProductRepository
from app.repositories.referral_repository import ReferralRepository
from app.services.balance_service import BalanceService
from app.services.exceptions import NotFound
from app.services.status_machine import (
    commission_machine,
    commission_status_for_order,
)
from app.utils.money import to_money
from app.utils.pagination import normalize_page, page_offset, paginated

HUNDRED = Decimal("100")


def calculate_commission(
    unit_price: Decimal, quantity: int, commission_percent: Decimal
) -> tuple[Decimal, Decimal]:
    """
    Compute a line's commission base and amount.

    Args:
        unit_price: Price paid per unit
        quantity: Units ordered
        commission_percent: Product rate (0-100)

    Returns:
        Tuple of (order_item_amount, commission_amount), unrounded
    """
    item_amount = Decimal(str(unit_price)) * quantity
    return item_amount, item_amount * Decimal(str(commission_percent)) / HUNDRED


class CommissionService:
    """Affiliate commission ledger."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission service."""
        self.session = session
        self.commission_repo = CommissionRepository(session)
        self.order_repo = OrderRepository(session)
        self.product_repo = ProductRepository(session)
        self.referral_repo = ReferralRepository(session)

    async def accrue_for_order(
        self, order_id: int, affiliate_id: int
    ) -> list[AffiliateCommission]:
        """
        Create PENDING commissions for an attributed order.

        One commission per line item whose product has a positive rate.
        An accrual marker is written for the order even when no line earns
        a commission, and the referral code's order counter is bumped once.
        Running it again for the same order creates nothing and returns the
        existing rows.

        Args:
            order_id: Order ID
            affiliate_id: Affiliate the order is attributed to

        Returns:
            Commissions of the order

        Raises:
            NotFound: If the order does not exist
        """
        order = await self.order_repo.get_by_id(order_id)
        if order is None:
            raise NotFound("Order not found", {"order_id": order_id})

        if await self.commission_repo.exists_for_order(order_id):
            logger.info(
                "Order already accrued, skipping",
                extra={"order_id": order_id, "affiliate_id": affiliate_id},
            )
            return await self.commission_repo.get_by_order(order_id)

        created = []
        for item in await self.order_repo.get_items_with_products(order_id):
            product = item.product
            if product is None:
                continue

            percent = Decimal(str(product.affiliate_commission or 0))
            if percent <= 0:
                continue

            item_amount, amount = calculate_commission(
                item.price, item.quantity, percent
            )
            commission = await self.commission_repo.create(
                affiliate_id=affiliate_id,
                order_id=order.id,
                order_item_id=item.id,
                product_id=product.id,
                order_item_amount=item_amount,
                commission_percent=percent,
                commission_amount=amount,
                quantity=item.quantity,
                status=CommissionStatus.PENDING.value,
            )
            created.append(commission)

        try:
            await self.commission_repo.mark_order_accrued(
                order.id, affiliate_id, len(created)
            )
            if order.referral_code:
                await self.referral_repo.increment_orders(order.referral_code)
            await self.session.commit()
        except IntegrityError:
            # A concurrent accrual of the same order won
            await self.session.rollback()
            logger.info(
                "Order accrued concurrently, skipping",
                extra={"order_id": order_id, "affiliate_id": affiliate_id},
            )
            return await self.commission_repo.get_by_order(order_id)

        logger.info(
            "Commissions accrued",
            extra={
                "order_id": order_id,
                "affiliate_id": affiliate_id,
                "count": len(created),
                "total": str(sum((c.commission_amount for c in created), Decimal("0"))),
            },
        )
        return created

    async def reconcile_for_order_status(
        self, order_id: int, new_status: OrderStatus
    ) -> int:
        """
        Move an order's commissions to the status its order implies.

        DELIVERED approves, CANCELLED and RETURNED cancel, other order
        statuses leave commissions alone. Transitions the commission state
        machine forbids are skipped and logged.

        Args:
            order_id: Order ID
            new_status: Order's new status

        Returns:
            Number of commissions changed
        """
        target = commission_status_for_order(OrderStatus(new_status))
        if target is None:
            return 0

        commissions = await self.commission_repo.get_by_order(order_id)
        changed = 0
        affected_affiliates = set()

        for commission in commissions:
            current = CommissionStatus(commission.status)
            if current == target:
                continue
            if not commission_machine.can_transition(current, target):
                logger.warning(
                    "Illegal commission transition skipped",
                    extra={
                        "commission_id": commission.id,
                        "order_id": order_id,
                        "current": current.value,
                        "requested": target.value,
                    },
                )
                continue

            commission.status = target.value
            affected_affiliates.add(commission.affiliate_id)
            changed += 1

        if changed:
            await self.session.flush()
            for affiliate_id in affected_affiliates:
                await self._refresh_total_earnings(affiliate_id)
            await self.session.commit()

            logger.info(
                "Commissions reconciled",
                extra={
                    "order_id": order_id,
                    "order_status": str(new_status),
                    "commission_status": target.value,
                    "changed": changed,
                },
            )

        return changed

    async def _refresh_total_earnings(self, affiliate_id: int) -> None:
        approved = await self.commission_repo.sum_by_status(
            affiliate_id, CommissionStatus.APPROVED
        )
        paid = await self.commission_repo.sum_by_status(
            affiliate_id, CommissionStatus.PAID
        )
        await self.referral_repo.set_total_earnings(affiliate_id, approved + paid)

    async def commissions_by_affiliate(
        self,
        affiliate_id: int,
        page: int = 1,
        limit: int = 20,
        status: CommissionStatus | None = None,
    ) -> dict:
        """
        List an affiliate's commissions, newest first.

        Args:
            affiliate_id: Affiliate user ID
            page: Page number (1-based)
            limit: Page size
            status: Optional status filter

        Returns:
            Paginated envelope of commission dicts
        """
        page, limit = normalize_page(page, limit)
        stmt = self.commission_repo.list_query(affiliate_id, status)
        commissions, total = await self.commission_repo.paginate(
            stmt, page_offset(page, limit), limit
        )

        product_names = await self.product_repo.get_names(
            [c.product_id for c in commissions if c.product_id is not None]
        )
        items = [
            {
                "id": c.id,
                "order_id": c.order_id,
                "order_number": c.order.order_number if c.order else None,
                "product_id": c.product_id,
                "product_name": product_names.get(c.product_id),
                "order_item_amount": to_money(c.order_item_amount),
                "commission_percent": Decimal(str(c.commission_percent)),
                "commission_amount": to_money(c.commission_amount),
                "quantity": c.quantity,
                "status": c.status,
                "created_at": as_utc(c.created_at),
            }
            for c in commissions
        ]
        return paginated(items, total, page, limit)

    async def earnings_by_period(
        self, affiliate_id: int, start: datetime, end: datetime
    ) -> list[dict]:
        """
        Approved earnings per UTC day within [start, end].

        Args:
            affiliate_id: Affiliate user ID
            start: Inclusive lower bound
            end: Inclusive upper bound

        Returns:
            [{"date": date, "earnings": Decimal}] ascending, days with
            commissions only
        """
        commissions = await self.commission_repo.get_approved_between(
            affiliate_id, as_utc(start), as_utc(end)
        )

        per_day: OrderedDict = OrderedDict()
        for commission in commissions:
            day = as_utc(commission.created_at).date()
            per_day[day] = per_day.get(day, Decimal("0")) + Decimal(
                str(commission.commission_amount)
            )

        return [
            {"date": day, "earnings": to_money(amount)}
            for day, amount in sorted(per_day.items())
        ]

    async def mark_paid_for_withdrawal(
        self, affiliate_id: int
    ) -> list[AffiliateCommission]:
        """
        Settle approved commissions against paid withdrawals.

        Oldest approved commissions move to PAID while each one still fits
        in the paid-out money not yet absorbed by earlier settlements. A
        remainder smaller than the next commission is carried over to the
        next payout. The paid withdrawal must be flushed first. Does not
        commit.

        Args:
            affiliate_id: Affiliate user ID

        Returns:
            Commissions marked as paid
        """
        remaining = await BalanceService(self.session).unsettled_payout(
            affiliate_id
        )
        settled = []

        for commission in await self.commission_repo.get_approved_oldest_first(
            affiliate_id
        ):
            commission_amount = Decimal(str(commission.commission_amount))
            if commission_amount > remaining:
                break
            commission_machine.validate(
                CommissionStatus(commission.status), CommissionStatus.PAID
            )
            commission.status = CommissionStatus.PAID.value
            remaining -= commission_amount
            settled.append(commission)

        await self.session.flush()
        await self._refresh_total_earnings(affiliate_id)

        logger.info(
            "Commissions settled for withdrawal",
            extra={
                "affiliate_id": affiliate_id,
                "settled_count": len(settled),
                "unsettled_remainder": str(remaining),
            },
        )
        return settled
