"""
AffiliateWithdrawal model.

Cash-out request created through the validated request path only.
"""

from decimal import Decimal

from sqlalchemy import DECIMAL, CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin
from app.models.enums import WithdrawalStatus


class AffiliateWithdrawal(TimestampMixin, Base):
    """Affiliate withdrawal request; amount is fixed at creation."""

    __tablename__ = "affiliate_withdrawals"
    __table_args__ = (
        CheckConstraint(
            "amount > 0", name="check_withdrawal_amount_positive"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    affiliate_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[Decimal] = mapped_column(DECIMAL(18, 8), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=WithdrawalStatus.PENDING.value,
        index=True,
    )

    payment_method: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )  # bank_transfer, paypal, ...
    payment_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )  # Admin notes or rejection reason

    @property
    def is_in_flight(self) -> bool:
        """Pending and approved withdrawals still hold balance."""
        return self.status in (
            WithdrawalStatus.PENDING.value,
            WithdrawalStatus.APPROVED.value,
        )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AffiliateWithdrawal(id={self.id}, affiliate_id={self.affiliate_id}, "
            f"amount={self.amount}, status={self.status})>"
        )


Index(
    "idx_withdrawal_affiliate_status",
    AffiliateWithdrawal.affiliate_id,
    AffiliateWithdrawal.status,
)
