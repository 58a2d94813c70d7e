"""
Order lifecycle hooks.

Entry points the order module calls when an order is placed or changes
status. Affiliate bookkeeping must never break order processing, so every
failure here is logged and swallowed.
"""

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import OrderStatus
from app.repositories.order_repository import OrderRepository
from app.services.commission_service import CommissionService
from app.services.referral_service import ReferralService


async def on_order_placed(session: AsyncSession, order_id: int) -> bool:
    """
    Attribute a new order to its affiliate and accrue commissions.

    Args:
        session: Database session
        order_id: Placed order ID

    Returns:
        True if commissions were accrued
    """
    try:
        order = await OrderRepository(session).get_by_id(order_id)
        if order is None or not order.referral_code:
            return False

        affiliate = await ReferralService(session).resolve_affiliate(
            order.referral_code
        )
        if affiliate is None:
            logger.info(
                "Order carries an unknown referral code",
                extra={
                    "order_id": order_id,
                    "referral_code": order.referral_code,
                },
            )
            return False

        if order.affiliate_id != affiliate.id:
            order.affiliate_id = affiliate.id
            await session.flush()

        await CommissionService(session).accrue_for_order(order_id, affiliate.id)
        return True
    except Exception:
        await session.rollback()
        logger.exception(
            f"Affiliate accrual failed for order {order_id}",
        )
        return False


async def on_order_status_changed(
    session: AsyncSession, order_id: int, status: OrderStatus | str
) -> int:
    """
    Reclassify an order's commissions after a status change.

    Args:
        session: Database session
        order_id: Order ID
        status: New order status

    Returns:
        Number of commissions changed (0 on failure)
    """
    try:
        return await CommissionService(session).reconcile_for_order_status(
            order_id, OrderStatus(status)
        )
    except Exception:
        await session.rollback()
        logger.exception(
            f"Affiliate commission reconcile failed for order {order_id}",
        )
        return 0
