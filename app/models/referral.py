"""
AffiliateReferral model.

One referral code per affiliate; the code is the public token used in
referral links.
"""

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    DECIMAL,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.user import User


class AffiliateReferral(TimestampMixin, Base):
    """
    AffiliateReferral entity.

    Attributes:
        id: Primary key
        affiliate_id: Owning affiliate
        referral_code: Globally unique code
        is_active: Only active codes resolve and count clicks
        total_clicks: Monotonic click counter
        total_orders: Monotonic counter of attributed orders
        total_earnings: Informational approved + paid commission total
    """

    __tablename__ = "affiliate_referrals"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    affiliate_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    referral_code: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    # Counters
    total_clicks: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    total_orders: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )
    total_earnings: Mapped[Decimal] = mapped_column(
        DECIMAL(18, 8), nullable=False, default=Decimal("0")
    )

    affiliate: Mapped["User"] = relationship("User", lazy="joined")

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AffiliateReferral(id={self.id}, affiliate_id={self.affiliate_id}, "
            f"referral_code={self.referral_code!r}, is_active={self.is_active})>"
        )


# At most one active code per affiliate
Index(
    "uq_affiliate_referral_active_affiliate",
    AffiliateReferral.affiliate_id,
    unique=True,
    postgresql_where=text("is_active"),
    sqlite_where=text("is_active = 1"),
)
