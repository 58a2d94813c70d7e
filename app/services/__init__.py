"""
Services.

Business logic layer.
"""

from app.services.balance_service import BalanceService
from app.services.commission_service import CommissionService
from app.services.exceptions import (
    AffiliateError,
    AlreadyVerified,
    BelowThreshold,
    GenerationExhausted,
    InsufficientBalance,
    InvalidAmount,
    InvalidOtp,
    InvalidRole,
    InvalidStatusTransition,
    MonthlyLimitReached,
    NotFound,
    SettingsNotInitialized,
    ValidationFailure,
    WithdrawalBusy,
)
from app.services.notification_retry_service import (
    NotificationRetryService,
)
from app.services.notification_service import (
    EmailSender,
    NotificationService,
    SmtpEmailSender,
)
from app.services.order_hooks import on_order_placed, on_order_status_changed
from app.services.payment_method_service import PaymentMethodService
from app.services.referral_service import (
    MintOutcome,
    MintResult,
    ReferralService,
)
from app.services.user_service import UserService
from app.services.withdrawal_service import WithdrawalService

__all__ = [
    # Affiliate engine
    "ReferralService",
    "MintOutcome",
    "MintResult",
    "CommissionService",
    "BalanceService",
    "WithdrawalService",
    "PaymentMethodService",
    "UserService",
    # Order module entry points
    "on_order_placed",
    "on_order_status_changed",
    # Notifications
    "EmailSender",
    "SmtpEmailSender",
    "NotificationService",
    "NotificationRetryService",
    # Errors
    "AffiliateError",
    "AlreadyVerified",
    "BelowThreshold",
    "GenerationExhausted",
    "InsufficientBalance",
    "InvalidAmount",
    "InvalidOtp",
    "InvalidRole",
    "InvalidStatusTransition",
    "MonthlyLimitReached",
    "NotFound",
    "SettingsNotInitialized",
    "ValidationFailure",
    "WithdrawalBusy",
]
