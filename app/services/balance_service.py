"""
Balance service.

Affiliate balance is never stored: it is recomputed from commission and
withdrawal rows on every call.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import utcnow
from app.models.enums import CommissionStatus
from app.repositories.commission_repository import CommissionRepository
from app.repositories.platform_settings_repository import (
    PlatformSettingsRepository,
)
from app.repositories.referral_repository import ReferralRepository
from app.repositories.withdrawal_repository import WithdrawalRepository
from app.services.exceptions import NotFound
from app.services.referral_service import ReferralService
from app.utils.money import to_money


def month_start(now: datetime) -> datetime:
    """First instant of the calendar month containing now."""
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def next_month_start(now: datetime) -> date:
    """First day of the month after now."""
    if now.month == 12:
        return date(now.year + 1, 1, 1)
    return date(now.year, now.month + 1, 1)


class BalanceService:
    """Balance calculator and affiliate dashboard."""

    def __init__(
        self,
        session: AsyncSession,
        settings_repo: PlatformSettingsRepository | None = None,
    ) -> None:
        """
        Initialize balance service.

        Args:
            session: Database session
            settings_repo: Platform settings source (defaults to the DB row)
        """
        self.session = session
        self.commission_repo = CommissionRepository(session)
        self.withdrawal_repo = WithdrawalRepository(session)
        self.referral_repo = ReferralRepository(session)
        self.settings_repo = settings_repo or PlatformSettingsRepository(session)

    async def unsettled_payout(self, affiliate_id: int) -> Decimal:
        """
        Paid-out withdrawal money not yet absorbed by PAID commissions.

        Settlement moves whole commissions only, so a payout can leave a
        remainder that still has to be deducted from approved earnings.

        Args:
            affiliate_id: Affiliate user ID

        Returns:
            Paid withdrawals minus paid commissions, never below 0
        """
        paid_out = await self.withdrawal_repo.sum_paid(affiliate_id)
        settled = await self.commission_repo.sum_by_status(
            affiliate_id, CommissionStatus.PAID
        )
        return max(Decimal("0"), paid_out - settled)

    async def available_balance(self, affiliate_id: int) -> Decimal:
        """
        Approved commissions minus in-flight withdrawals, never below 0.

        The unsettled remainder of paid withdrawals is deducted as well.

        Args:
            affiliate_id: Affiliate user ID

        Returns:
            Available balance at full precision
        """
        approved = await self.commission_repo.sum_by_status(
            affiliate_id, CommissionStatus.APPROVED
        )
        in_flight = await self.withdrawal_repo.sum_in_flight(affiliate_id)
        unsettled = await self.unsettled_payout(affiliate_id)
        return max(Decimal("0"), approved - in_flight - unsettled)

    async def has_withdrawal_this_month(
        self, affiliate_id: int, now: datetime | None = None
    ) -> bool:
        """Check if the affiliate requested a withdrawal this calendar month."""
        now = now or utcnow()
        return await self.withdrawal_repo.exists_since(
            affiliate_id, month_start(now)
        )

    async def dashboard_stats(self, affiliate_id: int) -> dict:
        """
        Aggregate the affiliate dashboard.

        Money values are rounded to 2 places here only.

        Args:
            affiliate_id: Affiliate user ID

        Returns:
            Dashboard dict

        Raises:
            NotFound: If the affiliate has no active referral code
            SettingsNotInitialized: If platform settings are missing
        """
        referral = await self.referral_repo.get_active_by_affiliate(
            affiliate_id
        )
        if referral is None:
            raise NotFound(
                "Affiliate referral not found", {"affiliate_id": affiliate_id}
            )

        platform_settings = await self.settings_repo.get_settings()
        minimum = Decimal(
            str(platform_settings.affiliate_min_withdrawal_threshold)
        )

        totals = await self.commission_repo.totals_by_status(affiliate_id)
        pending_amount, pending_count = totals[CommissionStatus.PENDING.value]
        approved_amount, approved_count = totals[CommissionStatus.APPROVED.value]
        paid_amount, paid_count = totals[CommissionStatus.PAID.value]

        in_flight = await self.withdrawal_repo.sum_in_flight(affiliate_id)
        unsettled = await self.unsettled_payout(affiliate_id)
        available = max(
            Decimal("0"), approved_amount - in_flight - unsettled
        )

        now = utcnow()
        has_withdrawal_this_month = await self.has_withdrawal_this_month(
            affiliate_id, now
        )
        monthly_blocked = (
            platform_settings.one_withdrawal_per_month
            and has_withdrawal_this_month
        )

        return {
            "referral_code": referral.referral_code,
            "referral_link": ReferralService.referral_link(
                referral.referral_code
            ),
            "total_clicks": referral.total_clicks,
            "total_orders": referral.total_orders,
            "pending_earnings": to_money(pending_amount),
            "approved_earnings": to_money(approved_amount),
            "paid_earnings": to_money(paid_amount),
            "total_earnings": to_money(approved_amount + paid_amount),
            "available_balance": to_money(available),
            "pending_withdrawals": to_money(in_flight),
            "minimum_withdrawal": to_money(minimum),
            "can_withdraw": available >= minimum and not monthly_blocked,
            "has_withdrawal_this_month": has_withdrawal_this_month,
            "next_withdrawal_date": (
                next_month_start(now) if monthly_blocked else None
            ),
            "pending_count": pending_count,
            "approved_count": approved_count,
            "paid_count": paid_count,
        }
