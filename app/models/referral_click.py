"""
AffiliateReferralClick model.

Append-only click events for referral analytics.
"""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow


class AffiliateReferralClick(Base):
    """Single referral link click, optionally for a specific product."""

    __tablename__ = "affiliate_referral_clicks"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    affiliate_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    referral_code: Mapped[str] = mapped_column(String(50), nullable=False)
    product_id: Mapped[int | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<AffiliateReferralClick(id={self.id}, "
            f"referral_code={self.referral_code!r}, product_id={self.product_id})>"
        )


Index(
    "idx_referral_click_affiliate_product",
    AffiliateReferralClick.affiliate_id,
    AffiliateReferralClick.product_id,
)
