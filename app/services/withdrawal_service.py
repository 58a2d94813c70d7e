"""
Withdrawal service.

Handles affiliate withdrawal requests, balance validation and admin
processing.
"""

import asyncio
import random
from decimal import Decimal, InvalidOperation

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.base import utcnow
from app.models.enums import WithdrawalStatus
from app.models.withdrawal import AffiliateWithdrawal
from app.repositories.platform_settings_repository import (
    PlatformSettingsRepository,
)
from app.repositories.user_repository import UserRepository
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.services.balance_service import BalanceService, next_month_start
from app.services.commission_service import CommissionService
from app.services.exceptions import (
    BelowThreshold,
    InsufficientBalance,
    InvalidAmount,
    InvalidRole,
    MonthlyLimitReached,
    NotFound,
    WithdrawalBusy,
)
from app.services.notification_service import NotificationService
from app.services.status_machine import withdrawal_machine
from app.utils.money import to_money
from app.utils.pagination import normalize_page, page_offset, paginated

LOCK_ERROR_MARKERS = ("could not obtain lock", "lock_not_available")


def is_lock_conflict(error: OperationalError) -> bool:
    """Check if a database error is a NOWAIT lock conflict."""
    message = str(error).lower()
    return any(marker in message for marker in LOCK_ERROR_MARKERS)


def withdrawal_to_dict(withdrawal: AffiliateWithdrawal) -> dict:
    """Presentation view of a withdrawal."""
    return {
        "id": withdrawal.id,
        "affiliate_id": withdrawal.affiliate_id,
        "amount": to_money(withdrawal.amount),
        "status": withdrawal.status,
        "payment_method": withdrawal.payment_method,
        "payment_details": withdrawal.payment_details,
        "notes": withdrawal.notes,
        "created_at": withdrawal.created_at,
        "updated_at": withdrawal.updated_at,
    }


class WithdrawalService:
    """Withdrawal service for affiliate cash-outs."""

    def __init__(
        self,
        session: AsyncSession,
        settings_repo: PlatformSettingsRepository | None = None,
        notification_service: NotificationService | None = None,
    ) -> None:
        """Initialize withdrawal service."""
        self.session = session
        self.settings_repo = settings_repo or PlatformSettingsRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.user_repo = UserRepository(session)
        self.balance_service = BalanceService(session, self.settings_repo)
        self.commission_service = CommissionService(session)
        self.notification_service = notification_service or NotificationService(
            session
        )

    async def request_withdrawal(
        self,
        affiliate_id: int,
        amount: Decimal,
        payment_method: str | None = None,
        payment_details: str | None = None,
    ) -> AffiliateWithdrawal:
        """
        Create a PENDING withdrawal request.

        Checks run in order: positive amount, platform minimum, monthly
        limit (when enabled), available balance. The affiliate's user row
        is locked while the balance is computed and the row inserted, so
        concurrent requests cannot both spend the same balance.

        Args:
            affiliate_id: Affiliate user ID
            amount: Requested amount (den)
            payment_method: Payout channel label
            payment_details: Free-form payout details

        Returns:
            Created withdrawal

        Raises:
            NotFound, InvalidRole, InvalidAmount, BelowThreshold,
            MonthlyLimitReached, InsufficientBalance, WithdrawalBusy
        """
        try:
            amount = Decimal(str(amount))
        except InvalidOperation:
            raise InvalidAmount(amount) from None
        if not amount.is_finite() or amount <= 0:
            raise InvalidAmount(amount)

        platform_settings = await self.settings_repo.get_settings()
        minimum = Decimal(
            str(platform_settings.affiliate_min_withdrawal_threshold)
        )
        if amount < minimum:
            raise BelowThreshold(minimum, amount)

        # Read before the loop; a rollback expires loaded rows
        one_per_month = platform_settings.one_withdrawal_per_month
        max_retries = settings.withdrawal_lock_retries
        for attempt in range(max_retries):
            try:
                withdrawal, affiliate = await self._create_locked(
                    affiliate_id,
                    amount,
                    one_per_month,
                    payment_method,
                    payment_details,
                )
                break
            except OperationalError as e:
                await self.session.rollback()
                if not is_lock_conflict(e):
                    logger.error(f"Database error in withdrawal: {e}")
                    raise
                if attempt < max_retries - 1:
                    delay = settings.withdrawal_lock_retry_delay * (
                        2 ** attempt
                    ) + random.uniform(0, 0.5)
                    logger.debug(
                        "Withdrawal lock busy, retrying",
                        extra={
                            "affiliate_id": affiliate_id,
                            "attempt": attempt + 1,
                            "delay": delay,
                        },
                    )
                    await asyncio.sleep(delay)
                    continue
                logger.warning(
                    "Withdrawal lock retries exhausted",
                    extra={"affiliate_id": affiliate_id},
                )
                raise WithdrawalBusy(affiliate_id) from e
            except Exception:
                await self.session.rollback()
                raise

        logger.info(
            "Withdrawal request created",
            extra={
                "withdrawal_id": withdrawal.id,
                "affiliate_id": affiliate_id,
                "amount": str(amount),
            },
        )

        await self.notification_service.notify_withdrawal_requested(
            withdrawal, affiliate
        )
        return withdrawal

    async def _create_locked(
        self,
        affiliate_id: int,
        amount: Decimal,
        one_per_month: bool,
        payment_method: str | None,
        payment_details: str | None,
    ):
        affiliate = await self.user_repo.lock_for_update(affiliate_id)
        if affiliate is None:
            raise NotFound("User not found", {"user_id": affiliate_id})
        if not affiliate.is_affiliate:
            raise InvalidRole(affiliate_id)

        if one_per_month:
            now = utcnow()
            if await self.balance_service.has_withdrawal_this_month(
                affiliate_id, now
            ):
                raise MonthlyLimitReached(next_month_start(now))

        available = await self.balance_service.available_balance(affiliate_id)
        if amount > available:
            raise InsufficientBalance(available, amount)

        withdrawal = await self.withdrawal_repo.create(
            affiliate_id=affiliate_id,
            amount=amount,
            status=WithdrawalStatus.PENDING.value,
            payment_method=payment_method,
            payment_details=payment_details,
        )
        await self.session.commit()
        return withdrawal, affiliate

    async def history(
        self,
        affiliate_id: int,
        page: int = 1,
        limit: int = 20,
        status: WithdrawalStatus | None = None,
    ) -> dict:
        """
        List an affiliate's withdrawals, newest first.

        Returns:
            Paginated envelope of withdrawal dicts
        """
        page, limit = normalize_page(page, limit)
        stmt = self.withdrawal_repo.list_query(affiliate_id, status)
        withdrawals, total = await self.withdrawal_repo.paginate(
            stmt, page_offset(page, limit), limit
        )
        return paginated(
            [withdrawal_to_dict(w) for w in withdrawals], total, page, limit
        )

    async def get_pending_withdrawals(
        self, page: int = 1, limit: int = 20
    ) -> dict:
        """
        List PENDING withdrawals of all affiliates, oldest first (admin).

        Returns:
            Paginated envelope of withdrawal dicts
        """
        page, limit = normalize_page(page, limit)
        stmt = self.withdrawal_repo.list_query(
            status=WithdrawalStatus.PENDING, newest_first=False
        )
        withdrawals, total = await self.withdrawal_repo.paginate(
            stmt, page_offset(page, limit), limit
        )
        return paginated(
            [withdrawal_to_dict(w) for w in withdrawals], total, page, limit
        )

    async def approve_withdrawal(
        self, withdrawal_id: int, notes: str | None = None
    ) -> AffiliateWithdrawal:
        """Approve a pending withdrawal (admin)."""
        return await self._change_status(
            withdrawal_id, WithdrawalStatus.APPROVED, notes
        )

    async def reject_withdrawal(
        self, withdrawal_id: int, reason: str | None = None
    ) -> AffiliateWithdrawal:
        """Reject a pending or approved withdrawal (admin); frees the balance."""
        return await self._change_status(
            withdrawal_id, WithdrawalStatus.REJECTED, reason
        )

    async def mark_withdrawal_paid(
        self, withdrawal_id: int, notes: str | None = None
    ) -> AffiliateWithdrawal:
        """Mark an approved withdrawal as paid and settle commissions (admin)."""
        return await self._change_status(
            withdrawal_id, WithdrawalStatus.PAID, notes
        )

    async def _change_status(
        self,
        withdrawal_id: int,
        new_status: WithdrawalStatus,
        notes: str | None,
    ) -> AffiliateWithdrawal:
        """
        Apply an admin status change through the withdrawal state machine.

        Raises:
            NotFound: If the withdrawal does not exist
            InvalidStatusTransition: If the change is not allowed
        """
        try:
            stmt = (
                select(AffiliateWithdrawal)
                .where(AffiliateWithdrawal.id == withdrawal_id)
                .with_for_update()
            )
            result = await self.session.execute(stmt)
            withdrawal = result.scalar_one_or_none()
            if withdrawal is None:
                raise NotFound(
                    "Withdrawal not found", {"withdrawal_id": withdrawal_id}
                )

            current = WithdrawalStatus(withdrawal.status)
            withdrawal_machine.validate(current, new_status)
            if current == new_status:
                return withdrawal

            withdrawal.status = new_status.value
            if notes is not None:
                withdrawal.notes = notes

            if new_status == WithdrawalStatus.PAID:
                await self.session.flush()
                await self.commission_service.mark_paid_for_withdrawal(
                    withdrawal.affiliate_id
                )

            await self.session.commit()
            await self.session.refresh(withdrawal)
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Withdrawal status changed",
            extra={
                "withdrawal_id": withdrawal_id,
                "from": current.value,
                "to": new_status.value,
            },
        )

        affiliate = await self.user_repo.get_by_id(withdrawal.affiliate_id)
        if affiliate is not None:
            await self.notification_service.notify_withdrawal_status_changed(
                withdrawal, affiliate
            )
        return withdrawal
