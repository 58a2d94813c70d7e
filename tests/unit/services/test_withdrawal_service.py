"""
Unit tests for WithdrawalService.

Tests request validation order, monthly limit, lock retries and admin
processing.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.models.base import utcnow
from app.models.enums import CommissionStatus, WithdrawalStatus
from app.repositories.platform_settings_repository import (
    PlatformSettingsRepository,
)
from app.services import withdrawal_service as withdrawal_module
from app.services.balance_service import BalanceService, next_month_start
from app.services.exceptions import (
    BelowThreshold,
    InsufficientBalance,
    InvalidAmount,
    InvalidRole,
    InvalidStatusTransition,
    MonthlyLimitReached,
    NotFound,
    SettingsNotInitialized,
    WithdrawalBusy,
)
from app.services.withdrawal_service import WithdrawalService, is_lock_conflict


@pytest.fixture
def withdrawal_service(
    db_session,  # pylint: disable=redefined-outer-name
    notification_service,  # pylint: disable=redefined-outer-name
) -> WithdrawalService:
    """Withdrawal service with in-memory e-mail delivery."""
    return WithdrawalService(
        db_session, notification_service=notification_service
    )


class TestRequestWithdrawal:
    """Validation of withdrawal requests (minimum 1000 den)."""

    @pytest.mark.asyncio
    async def test_below_minimum(
        self,
        withdrawal_service,
        test_affiliate,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        create_commission_helper,  # pylint: disable=redefined-outer-name
    ):
        await create_commission_helper(test_affiliate, Decimal("1000"))

        with pytest.raises(BelowThreshold) as exc_info:
            await withdrawal_service.request_withdrawal(
                test_affiliate.id, Decimal("500")
            )

        assert exc_info.value.message == (
            "Minimum withdrawal amount is 1000.00 den. "
            "You requested 500.00 den."
        )

    @pytest.mark.asyncio
    async def test_above_balance(
        self,
        withdrawal_service,
        test_affiliate,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        create_commission_helper,  # pylint: disable=redefined-outer-name
    ):
        await create_commission_helper(test_affiliate, Decimal("1000"))

        with pytest.raises(InsufficientBalance) as exc_info:
            await withdrawal_service.request_withdrawal(
                test_affiliate.id, Decimal("1500")
            )

        assert exc_info.value.message == (
            "Insufficient balance. Available: 1000.00 den, "
            "Requested: 1500.00 den"
        )
        assert exc_info.value.error_code == "INSUFFICIENT_BALANCE"

    @pytest.mark.asyncio
    async def test_exact_balance_succeeds(
        self,
        db_session,  # pylint: disable=redefined-outer-name
        withdrawal_service,
        test_affiliate,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        create_commission_helper,  # pylint: disable=redefined-outer-name
    ):
        await create_commission_helper(test_affiliate, Decimal("1000"))

        withdrawal = await withdrawal_service.request_withdrawal(
            test_affiliate.id,
            Decimal("1000"),
            payment_method="bank_transfer",
        )

        assert withdrawal.id is not None
        assert withdrawal.status == WithdrawalStatus.PENDING.value
        assert withdrawal.amount == Decimal("1000")
        assert await BalanceService(db_session).available_balance(
            test_affiliate.id
        ) == Decimal("0")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5"), "abc", "NaN"])
    async def test_invalid_amount(
        self,
        withdrawal_service,
        test_affiliate,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        amount,
    ):
        with pytest.raises(InvalidAmount):
            await withdrawal_service.request_withdrawal(test_affiliate.id, amount)

    @pytest.mark.asyncio
    async def test_non_affiliate(
        self,
        withdrawal_service,
        test_customer,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
    ):
        customer_id = test_customer.id

        with pytest.raises(InvalidRole):
            await withdrawal_service.request_withdrawal(
                customer_id, Decimal("1000")
            )

        with pytest.raises(NotFound):
            await withdrawal_service.request_withdrawal(
                999_999, Decimal("1000")
            )

    @pytest.mark.asyncio
    async def test_settings_missing(
        self,
        withdrawal_service,
        test_affiliate,  # pylint: disable=redefined-outer-name
    ):
        with pytest.raises(SettingsNotInitialized):
            await withdrawal_service.request_withdrawal(
                test_affiliate.id, Decimal("1000")
            )

    @pytest.mark.asyncio
    async def test_monthly_limit(
        self,
        db_session,  # pylint: disable=redefined-outer-name
        withdrawal_service,
        test_affiliate,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        create_commission_helper,  # pylint: disable=redefined-outer-name
    ):
        """With the policy on, a second request in a month is refused."""
        await PlatformSettingsRepository(db_session).update_settings(
            one_withdrawal_per_month=True
        )
        await create_commission_helper(test_affiliate, Decimal("3000"))

        await withdrawal_service.request_withdrawal(
            test_affiliate.id, Decimal("1000")
        )
        with pytest.raises(MonthlyLimitReached) as exc_info:
            await withdrawal_service.request_withdrawal(
                test_affiliate.id, Decimal("1000")
            )

        assert exc_info.value.next_withdrawal_date == next_month_start(utcnow())

    @pytest.mark.asyncio
    async def test_monthly_limit_off_by_default(
        self,
        withdrawal_service,
        test_affiliate,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        create_commission_helper,  # pylint: disable=redefined-outer-name
    ):
        await create_commission_helper(test_affiliate, Decimal("3000"))

        await withdrawal_service.request_withdrawal(
            test_affiliate.id, Decimal("1000")
        )
        second = await withdrawal_service.request_withdrawal(
            test_affiliate.id, Decimal("1000")
        )

        assert second.status == WithdrawalStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_lock_conflict_retried_then_busy(
        self,
        withdrawal_service,
        test_affiliate,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        monkeypatch,
    ):
        attempts = []

        async def locked(user_id):
            attempts.append(user_id)
            raise OperationalError(
                "SELECT ... FOR UPDATE NOWAIT",
                {},
                Exception("could not obtain lock on row in relation \"users\""),
            )

        monkeypatch.setattr(
            withdrawal_service.user_repo, "lock_for_update", locked
        )
        monkeypatch.setattr(
            withdrawal_module.settings, "withdrawal_lock_retry_delay", 0.0
        )
        monkeypatch.setattr(withdrawal_module.random, "uniform", lambda a, b: 0.0)

        with pytest.raises(WithdrawalBusy):
            await withdrawal_service.request_withdrawal(
                test_affiliate.id, Decimal("1000")
            )

        assert len(attempts) == withdrawal_module.settings.withdrawal_lock_retries


def test_is_lock_conflict():
    busy = OperationalError("stmt", {}, Exception("could not obtain lock on row"))
    other = OperationalError("stmt", {}, Exception("server closed the connection"))
    assert is_lock_conflict(busy)
    assert not is_lock_conflict(other)


class TestAdminProcessing:
    """Approve, reject and pay through the withdrawal state machine."""

    @pytest.mark.asyncio
    async def test_reject_releases_balance(
        self,
        db_session,  # pylint: disable=redefined-outer-name
        withdrawal_service,
        recording_sender,  # pylint: disable=redefined-outer-name
        test_affiliate,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        create_commission_helper,  # pylint: disable=redefined-outer-name
    ):
        await create_commission_helper(test_affiliate, Decimal("1000"))
        withdrawal = await withdrawal_service.request_withdrawal(
            test_affiliate.id, Decimal("1000")
        )

        rejected = await withdrawal_service.reject_withdrawal(
            withdrawal.id, reason="Bank details do not match"
        )

        assert rejected.status == WithdrawalStatus.REJECTED.value
        assert rejected.notes == "Bank details do not match"
        assert await BalanceService(db_session).available_balance(
            test_affiliate.id
        ) == Decimal("1000")
        assert recording_sender.sent[-1]["recipient"] == test_affiliate.email

    @pytest.mark.asyncio
    async def test_pay_settles_commissions(
        self,
        db_session,  # pylint: disable=redefined-outer-name
        withdrawal_service,
        test_affiliate,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        create_commission_helper,  # pylint: disable=redefined-outer-name
    ):
        commission = await create_commission_helper(
            test_affiliate, Decimal("1000")
        )
        withdrawal = await withdrawal_service.request_withdrawal(
            test_affiliate.id, Decimal("1000")
        )

        await withdrawal_service.approve_withdrawal(withdrawal.id)
        paid = await withdrawal_service.mark_withdrawal_paid(withdrawal.id)

        assert paid.status == WithdrawalStatus.PAID.value
        await db_session.refresh(commission)
        assert commission.status == CommissionStatus.PAID.value
        assert await BalanceService(db_session).available_balance(
            test_affiliate.id
        ) == Decimal("0")

    @pytest.mark.asyncio
    async def test_partial_settlement_is_not_withdrawable_again(
        self,
        db_session,  # pylint: disable=redefined-outer-name
        withdrawal_service,
        test_affiliate,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        create_commission_helper,  # pylint: disable=redefined-outer-name
    ):
        """Paying 1000 against 600 + 600 leaves 200, and the rest carries over."""
        first = await create_commission_helper(test_affiliate, Decimal("600"))
        second = await create_commission_helper(test_affiliate, Decimal("600"))
        affiliate_id = test_affiliate.id
        balance_service = BalanceService(db_session)

        withdrawal = await withdrawal_service.request_withdrawal(
            affiliate_id, Decimal("1000")
        )
        await withdrawal_service.approve_withdrawal(withdrawal.id)
        await withdrawal_service.mark_withdrawal_paid(withdrawal.id)

        await db_session.refresh(first)
        await db_session.refresh(second)
        assert first.status == CommissionStatus.PAID.value
        assert second.status == CommissionStatus.APPROVED.value
        assert await balance_service.unsettled_payout(affiliate_id) == Decimal("400")
        assert await balance_service.available_balance(affiliate_id) == Decimal("200")

        with pytest.raises(InsufficientBalance):
            await withdrawal_service.request_withdrawal(
                affiliate_id, Decimal("1000")
            )
        await db_session.refresh(test_affiliate)

        # The carried 400 is absorbed by the next payout
        third = await create_commission_helper(test_affiliate, Decimal("1000"))
        assert await balance_service.available_balance(affiliate_id) == Decimal("1200")

        withdrawal = await withdrawal_service.request_withdrawal(
            affiliate_id, Decimal("1200")
        )
        await withdrawal_service.approve_withdrawal(withdrawal.id)
        await withdrawal_service.mark_withdrawal_paid(withdrawal.id)

        await db_session.refresh(second)
        await db_session.refresh(third)
        assert second.status == CommissionStatus.PAID.value
        assert third.status == CommissionStatus.PAID.value
        assert await balance_service.unsettled_payout(affiliate_id) == Decimal("0")
        assert await balance_service.available_balance(affiliate_id) == Decimal("0")

    @pytest.mark.asyncio
    async def test_cannot_pay_pending(
        self,
        withdrawal_service,
        test_affiliate,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        create_commission_helper,  # pylint: disable=redefined-outer-name
    ):
        await create_commission_helper(test_affiliate, Decimal("1000"))
        withdrawal = await withdrawal_service.request_withdrawal(
            test_affiliate.id, Decimal("1000")
        )

        with pytest.raises(InvalidStatusTransition):
            await withdrawal_service.mark_withdrawal_paid(withdrawal.id)

    @pytest.mark.asyncio
    async def test_rejected_is_terminal(
        self,
        withdrawal_service,
        test_affiliate,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        create_commission_helper,  # pylint: disable=redefined-outer-name
    ):
        await create_commission_helper(test_affiliate, Decimal("1000"))
        withdrawal = await withdrawal_service.request_withdrawal(
            test_affiliate.id, Decimal("1000")
        )
        withdrawal_id = withdrawal.id
        await withdrawal_service.reject_withdrawal(withdrawal.id)

        with pytest.raises(InvalidStatusTransition):
            await withdrawal_service.approve_withdrawal(withdrawal_id)

        # Re-applying the current status is a no-op
        again = await withdrawal_service.reject_withdrawal(withdrawal_id)
        assert again.status == WithdrawalStatus.REJECTED.value

    @pytest.mark.asyncio
    async def test_unknown_withdrawal(
        self,
        withdrawal_service,
        platform_settings,  # pylint: disable=redefined-outer-name
    ):
        with pytest.raises(NotFound):
            await withdrawal_service.approve_withdrawal(999_999)


class TestListings:
    """Withdrawal history and admin queue."""

    @pytest.mark.asyncio
    async def test_history_and_pending_queue(
        self,
        withdrawal_service,
        create_user_helper,  # pylint: disable=redefined-outer-name
        platform_settings,  # pylint: disable=redefined-outer-name
        create_commission_helper,  # pylint: disable=redefined-outer-name
    ):
        first = await create_user_helper()
        second = await create_user_helper()
        await create_commission_helper(first, Decimal("5000"))
        await create_commission_helper(second, Decimal("5000"))

        w1 = await withdrawal_service.request_withdrawal(first.id, Decimal("1000"))
        w2 = await withdrawal_service.request_withdrawal(second.id, Decimal("1200"))
        w3 = await withdrawal_service.request_withdrawal(first.id, Decimal("1100"))
        await withdrawal_service.approve_withdrawal(w3.id)

        history = await withdrawal_service.history(first.id)
        assert [w["id"] for w in history["items"]] == [w3.id, w1.id]
        assert history["items"][1]["amount"] == Decimal("1000.00")
        assert history["pagination"]["total"] == 2

        queue = await withdrawal_service.get_pending_withdrawals()
        assert [w["id"] for w in queue["items"]] == [w1.id, w2.id]
