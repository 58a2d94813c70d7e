"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.base import Base
from app.models.commission import AffiliateCommission, AffiliateOrderAccrual
from app.models.enums import (
    CommissionStatus,
    NotificationType,
    OrderStatus,
    UserType,
    WithdrawalStatus,
)
from app.models.failed_notification import FailedNotification
from app.models.order import Order, OrderItem
from app.models.payment_method import AffiliatePaymentMethod, PaymentMethodOtp
from app.models.platform_settings import PlatformSettings
from app.models.product import Product
from app.models.referral import AffiliateReferral
from app.models.referral_click import AffiliateReferralClick

# Core Models
from app.models.user import User
from app.models.withdrawal import AffiliateWithdrawal

__all__ = [
    # Base
    "Base",
    # Enums
    "CommissionStatus",
    "NotificationType",
    "OrderStatus",
    "UserType",
    "WithdrawalStatus",
    # Marketplace Models
    "User",
    "Product",
    "Order",
    "OrderItem",
    "PlatformSettings",
    # Affiliate Models
    "AffiliateReferral",
    "AffiliateReferralClick",
    "AffiliateCommission",
    "AffiliateOrderAccrual",
    "AffiliateWithdrawal",
    "AffiliatePaymentMethod",
    "PaymentMethodOtp",
    # Delivery tracking
    "FailedNotification",
]
