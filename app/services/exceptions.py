"""
Affiliate engine errors.

Every error carries a stable error_code, a message safe to show the
affiliate and a context dict with the values behind it.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from app.utils.bank_validators import RuleViolation
from app.utils.money import to_money


class AffiliateError(ValueError):
    """Base class for affiliate engine errors."""

    error_code = "AFFILIATE_ERROR"

    def __init__(
        self, message: str, context: dict[str, Any] | None = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
            "context": self.context,
        }


class NotFound(AffiliateError):
    error_code = "NOT_FOUND"


class InvalidRole(AffiliateError):
    error_code = "INVALID_ROLE"

    def __init__(self, user_id: int) -> None:
        super().__init__(
            "User is not an affiliate", {"user_id": user_id}
        )


class InvalidAmount(AffiliateError):
    error_code = "INVALID_AMOUNT"

    def __init__(self, requested: Decimal) -> None:
        super().__init__(
            "Withdrawal amount must be greater than 0",
            {"requested": str(requested)},
        )


class BelowThreshold(AffiliateError):
    error_code = "BELOW_THRESHOLD"

    def __init__(self, minimum: Decimal, requested: Decimal) -> None:
        self.minimum = minimum
        self.requested = requested
        super().__init__(
            f"Minimum withdrawal amount is {to_money(minimum)} den. "
            f"You requested {to_money(requested)} den.",
            {"minimum": str(to_money(minimum)), "requested": str(to_money(requested))},
        )


class InsufficientBalance(AffiliateError):
    error_code = "INSUFFICIENT_BALANCE"

    def __init__(self, available: Decimal, requested: Decimal) -> None:
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient balance. Available: {to_money(available)} den, "
            f"Requested: {to_money(requested)} den",
            {
                "available": str(to_money(available)),
                "requested": str(to_money(requested)),
            },
        )


class MonthlyLimitReached(AffiliateError):
    error_code = "MONTHLY_LIMIT_REACHED"

    def __init__(self, next_withdrawal_date: date) -> None:
        self.next_withdrawal_date = next_withdrawal_date
        super().__init__(
            "You can only request one withdrawal per month. "
            f"Next withdrawal available on {next_withdrawal_date.isoformat()}.",
            {"next_withdrawal_date": next_withdrawal_date.isoformat()},
        )


class ValidationFailure(AffiliateError):
    error_code = "VALIDATION_FAILED"

    def __init__(self, violations: list[RuleViolation]) -> None:
        self.violations = violations
        super().__init__(
            "; ".join(violation.message for violation in violations),
            {"violations": [violation.to_dict() for violation in violations]},
        )


class InvalidOtp(AffiliateError):
    error_code = "INVALID_OTP"


class GenerationExhausted(AffiliateError):
    error_code = "CODE_GENERATION_EXHAUSTED"

    def __init__(self, attempts: int) -> None:
        super().__init__(
            "Failed to generate unique referral code",
            {"attempts": attempts},
        )


class InvalidStatusTransition(AffiliateError):
    error_code = "INVALID_STATUS_TRANSITION"

    def __init__(self, entity: str, current: str, requested: str) -> None:
        super().__init__(
            f"Cannot change {entity} status from {current} to {requested}",
            {"entity": entity, "current": current, "requested": requested},
        )


class WithdrawalBusy(AffiliateError):
    error_code = "WITHDRAWAL_BUSY"

    def __init__(self, affiliate_id: int) -> None:
        super().__init__(
            "Another withdrawal request is being processed. "
            "Please try again in a moment.",
            {"affiliate_id": affiliate_id},
        )


class SettingsNotInitialized(AffiliateError):
    error_code = "SETTINGS_NOT_INITIALIZED"

    def __init__(self) -> None:
        super().__init__(
            "Platform settings are not initialized; run scripts/init_db.py"
        )


class AlreadyVerified(AffiliateError):
    error_code = "ALREADY_VERIFIED"

    def __init__(self, payment_method_id: int) -> None:
        super().__init__(
            "Payment method is already verified",
            {"payment_method_id": payment_method_id},
        )
