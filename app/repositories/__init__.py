"""
Repositories.

Data access layer for all models.
"""

from app.repositories.base import BaseRepository
from app.repositories.commission_repository import CommissionRepository
from app.repositories.failed_notification_repository import (
    FailedNotificationRepository,
)
from app.repositories.order_repository import OrderRepository
from app.repositories.payment_method_repository import (
    PaymentMethodOtpRepository,
    PaymentMethodRepository,
)
from app.repositories.platform_settings_repository import (
    PlatformSettingsRepository,
)
from app.repositories.product_repository import ProductRepository
from app.repositories.referral_repository import (
    ReferralClickRepository,
    ReferralRepository,
)

# Core Repositories
from app.repositories.user_repository import UserRepository
from app.repositories.withdrawal_repository import WithdrawalRepository

__all__ = [
    # Base
    "BaseRepository",
    # Core
    "UserRepository",
    "OrderRepository",
    "ProductRepository",
    # Affiliate
    "ReferralRepository",
    "ReferralClickRepository",
    "CommissionRepository",
    "WithdrawalRepository",
    "PaymentMethodRepository",
    "PaymentMethodOtpRepository",
    # System
    "PlatformSettingsRepository",
    "FailedNotificationRepository",
]
