"""
Unit tests for BalanceService.

Tests the derived available balance and the affiliate dashboard.
"""

from datetime import UTC, date, datetime
from decimal import Decimal

import pytest

from app.models.enums import CommissionStatus, WithdrawalStatus
from app.models.withdrawal import AffiliateWithdrawal
from app.services.balance_service import (
    BalanceService,
    month_start,
    next_month_start,
)
from app.services.exceptions import NotFound, SettingsNotInitialized
from app.services.referral_service import ReferralService


def test_month_boundaries():
    now = datetime(2026, 12, 15, 13, 45, tzinfo=UTC)
    assert month_start(now) == datetime(2026, 12, 1, tzinfo=UTC)
    assert next_month_start(now) == date(2027, 1, 1)
    assert next_month_start(datetime(2026, 2, 28, tzinfo=UTC)) == date(2026, 3, 1)


async def _add_withdrawal(session, affiliate, amount, status):
    withdrawal = AffiliateWithdrawal(
        affiliate_id=affiliate.id, amount=Decimal(amount), status=status.value
    )
    session.add(withdrawal)
    await session.commit()
    return withdrawal


@pytest.mark.asyncio
async def test_available_balance_subtracts_in_flight_withdrawals(
    db_session,  # pylint: disable=redefined-outer-name
    test_affiliate,  # pylint: disable=redefined-outer-name
    create_commission_helper,  # pylint: disable=redefined-outer-name
):
    """Pending and approved withdrawals reserve balance, others do not."""
    await create_commission_helper(test_affiliate, Decimal("1500"))
    await create_commission_helper(test_affiliate, Decimal("700"))
    await create_commission_helper(
        test_affiliate, Decimal("300"), CommissionStatus.PENDING
    )
    await create_commission_helper(
        test_affiliate, Decimal("900"), CommissionStatus.PAID
    )
    await _add_withdrawal(
        db_session, test_affiliate, "1000", WithdrawalStatus.PENDING
    )
    await _add_withdrawal(
        db_session, test_affiliate, "200", WithdrawalStatus.APPROVED
    )
    await _add_withdrawal(
        db_session, test_affiliate, "5000", WithdrawalStatus.REJECTED
    )
    await _add_withdrawal(
        db_session, test_affiliate, "900", WithdrawalStatus.PAID
    )

    balance = await BalanceService(db_session).available_balance(
        test_affiliate.id
    )

    assert balance == Decimal("1000")


@pytest.mark.asyncio
async def test_available_balance_never_negative(
    db_session,  # pylint: disable=redefined-outer-name
    test_affiliate,  # pylint: disable=redefined-outer-name
    create_commission_helper,  # pylint: disable=redefined-outer-name
):
    """A commission cancelled after withdrawal does not push balance below 0."""
    await create_commission_helper(
        test_affiliate, Decimal("1000"), CommissionStatus.CANCELLED
    )
    await _add_withdrawal(
        db_session, test_affiliate, "1000", WithdrawalStatus.PENDING
    )

    balance = await BalanceService(db_session).available_balance(
        test_affiliate.id
    )

    assert balance == Decimal("0")


@pytest.mark.asyncio
async def test_available_balance_without_history(
    db_session,  # pylint: disable=redefined-outer-name
    test_affiliate,  # pylint: disable=redefined-outer-name
):
    balance = await BalanceService(db_session).available_balance(
        test_affiliate.id
    )
    assert balance == Decimal("0")


@pytest.mark.asyncio
async def test_dashboard_stats(
    db_session,  # pylint: disable=redefined-outer-name
    test_affiliate,  # pylint: disable=redefined-outer-name
    platform_settings,  # pylint: disable=redefined-outer-name
    create_commission_helper,  # pylint: disable=redefined-outer-name
):
    code = await ReferralService(db_session).get_or_create_code(
        test_affiliate.id
    )
    await create_commission_helper(test_affiliate, Decimal("1200.555"))
    await create_commission_helper(
        test_affiliate, Decimal("80"), CommissionStatus.PENDING
    )
    await create_commission_helper(
        test_affiliate, Decimal("300"), CommissionStatus.PAID
    )

    stats = await BalanceService(db_session).dashboard_stats(test_affiliate.id)

    assert stats["referral_code"] == code
    assert stats["referral_link"].endswith(f"?ref={code}")
    assert stats["pending_earnings"] == Decimal("80.00")
    assert stats["approved_earnings"] == Decimal("1200.56")
    assert stats["paid_earnings"] == Decimal("300.00")
    assert stats["total_earnings"] == Decimal("1500.56")
    assert stats["available_balance"] == Decimal("1200.56")
    assert stats["pending_withdrawals"] == Decimal("0.00")
    assert stats["minimum_withdrawal"] == Decimal("1000.00")
    assert stats["can_withdraw"] is True
    assert stats["has_withdrawal_this_month"] is False
    assert stats["next_withdrawal_date"] is None
    assert (stats["pending_count"], stats["approved_count"], stats["paid_count"]) == (1, 1, 1)


@pytest.mark.asyncio
async def test_dashboard_below_minimum_cannot_withdraw(
    db_session,  # pylint: disable=redefined-outer-name
    test_affiliate,  # pylint: disable=redefined-outer-name
    platform_settings,  # pylint: disable=redefined-outer-name
    create_commission_helper,  # pylint: disable=redefined-outer-name
):
    await ReferralService(db_session).get_or_create_code(test_affiliate.id)
    await create_commission_helper(test_affiliate, Decimal("999.99"))

    stats = await BalanceService(db_session).dashboard_stats(test_affiliate.id)

    assert stats["can_withdraw"] is False


@pytest.mark.asyncio
async def test_dashboard_requires_referral_code(
    db_session,  # pylint: disable=redefined-outer-name
    test_affiliate,  # pylint: disable=redefined-outer-name
    platform_settings,  # pylint: disable=redefined-outer-name
):
    with pytest.raises(NotFound):
        await BalanceService(db_session).dashboard_stats(test_affiliate.id)


@pytest.mark.asyncio
async def test_dashboard_requires_platform_settings(
    db_session,  # pylint: disable=redefined-outer-name
    test_affiliate,  # pylint: disable=redefined-outer-name
):
    await ReferralService(db_session).get_or_create_code(test_affiliate.id)

    with pytest.raises(SettingsNotInitialized):
        await BalanceService(db_session).dashboard_stats(test_affiliate.id)
