"""
Payout profile models.

AffiliatePaymentMethod holds the bank details an affiliate is paid to;
PaymentMethodOtp is the short-lived challenge that gates changes to it.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, as_utc, utcnow


class AffiliatePaymentMethod(TimestampMixin, Base):
    """Bank payout profile, one per affiliate."""

    __tablename__ = "affiliate_payment_methods"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    affiliate_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    bank_name: Mapped[str] = mapped_column(String(255), nullable=False)
    account_number: Mapped[str] = mapped_column(String(100), nullable=False)
    account_holder_name: Mapped[str] = mapped_column(
        String(255), nullable=False
    )
    iban: Mapped[str | None] = mapped_column(String(50), nullable=True)
    swift_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    bank_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Admin review
    verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    verification_notes: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )

    @property
    def masked_account_number(self) -> str:
        """Account number with everything but the last 4 digits hidden."""
        if not self.account_number or len(self.account_number) <= 4:
            return self.account_number
        return "*" * (len(self.account_number) - 4) + self.account_number[-4:]

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AffiliatePaymentMethod(id={self.id}, "
            f"affiliate_id={self.affiliate_id}, bank_name={self.bank_name!r}, "
            f"verified={self.verified})>"
        )


class PaymentMethodOtp(Base):
    """Single-use 6-digit code confirming a payout detail change."""

    __tablename__ = "payment_method_otps"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    affiliate_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )  # Consumed or invalidated
    failed_attempts: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the code is past its expiry time."""
        return (now or utcnow()) > as_utc(self.expires_at)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<PaymentMethodOtp(id={self.id}, affiliate_id={self.affiliate_id}, "
            f"verified={self.verified}, expires_at={self.expires_at})>"
        )


Index(
    "idx_payment_method_otp_affiliate_verified",
    PaymentMethodOtp.affiliate_id,
    PaymentMethodOtp.verified,
)
