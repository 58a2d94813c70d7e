"""
Unit tests for order lifecycle hooks.

Tests attribution on order placement and that failures never propagate.
"""

from decimal import Decimal

import pytest

from app.models.enums import CommissionStatus, OrderStatus
from app.repositories.commission_repository import CommissionRepository
from app.services.order_hooks import on_order_placed, on_order_status_changed
from app.services.referral_service import ReferralService


@pytest.mark.asyncio
async def test_order_placed_with_referral_code(
    db_session,  # pylint: disable=redefined-outer-name
    test_affiliate,  # pylint: disable=redefined-outer-name
    create_product_helper,  # pylint: disable=redefined-outer-name
    create_order_helper,  # pylint: disable=redefined-outer-name
):
    """The order is attributed to the code's affiliate and accrued."""
    code = await ReferralService(db_session).get_or_create_code(
        test_affiliate.id
    )
    product = await create_product_helper(Decimal("15"))
    order = await create_order_helper(
        [(product, Decimal("200"), 1)], referral_code=code
    )

    assert await on_order_placed(db_session, order.id) is True

    await db_session.refresh(order)
    assert order.affiliate_id == test_affiliate.id
    [commission] = await CommissionRepository(db_session).get_by_order(order.id)
    assert commission.commission_amount == Decimal("30")

    assert await on_order_status_changed(
        db_session, order.id, OrderStatus.DELIVERED
    ) == 1
    await db_session.refresh(commission)
    assert commission.status == CommissionStatus.APPROVED.value


@pytest.mark.asyncio
async def test_order_placed_without_attribution(
    db_session,  # pylint: disable=redefined-outer-name
    create_product_helper,  # pylint: disable=redefined-outer-name
    create_order_helper,  # pylint: disable=redefined-outer-name
):
    product = await create_product_helper()
    plain = await create_order_helper([(product, Decimal("100"), 1)])
    unknown = await create_order_helper(
        [(product, Decimal("100"), 1)], referral_code="AFF-NOBODY"
    )

    assert await on_order_placed(db_session, plain.id) is False
    assert await on_order_placed(db_session, unknown.id) is False
    assert await on_order_placed(db_session, 999_999) is False


@pytest.mark.asyncio
async def test_hook_failures_are_swallowed(
    db_session,  # pylint: disable=redefined-outer-name
    test_affiliate,  # pylint: disable=redefined-outer-name
    create_product_helper,  # pylint: disable=redefined-outer-name
    create_order_helper,  # pylint: disable=redefined-outer-name
    monkeypatch,
):
    code = await ReferralService(db_session).get_or_create_code(
        test_affiliate.id
    )
    product = await create_product_helper()
    order = await create_order_helper(
        [(product, Decimal("100"), 1)], referral_code=code
    )
    order_id = order.id

    async def broken(self, *args, **kwargs):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr(
        "app.services.commission_service.CommissionService.accrue_for_order",
        broken,
    )

    assert await on_order_placed(db_session, order_id) is False
    assert await on_order_status_changed(db_session, order_id, "bogus") == 0
