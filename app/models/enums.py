"""
Database enums.

Centralized enums used across database models.
"""

from enum import StrEnum


class UserType(StrEnum):
    """Marketplace account types."""

    SELLER = "seller"
    AFFILIATE = "affiliate"
    CUSTOMER = "customer"
    ADMIN = "admin"


class OrderStatus(StrEnum):
    """Order lifecycle values (owned by the order module)."""

    PENDING = "pending"
    PROCESSING = "processing"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"


class CommissionStatus(StrEnum):
    """Affiliate commission status values."""

    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"  # Settled by a paid withdrawal
    CANCELLED = "cancelled"


class WithdrawalStatus(StrEnum):
    """Affiliate withdrawal status values."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class NotificationType(StrEnum):
    """Auxiliary notification kinds."""

    PAYMENT_METHOD_OTP = "payment_method_otp"
    WITHDRAWAL_REQUESTED = "withdrawal_requested"
    WITHDRAWAL_STATUS_CHANGED = "withdrawal_status_changed"
