"""
Platform Settings model.

Stores platform-wide values configurable via the admin panel.
Singleton pattern (one row with key "main").
"""

from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin

MAIN_SETTINGS_KEY = "main"


class PlatformSettings(TimestampMixin, Base):
    """Platform settings model."""

    __tablename__ = "platform_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    key: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False, default=MAIN_SETTINGS_KEY
    )

    # Affiliate withdrawal settings (den)
    affiliate_min_withdrawal_threshold: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), default=Decimal("1000"), nullable=False
    )
    one_withdrawal_per_month: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<PlatformSettings(key={self.key!r}, "
            f"min_withdrawal={self.affiliate_min_withdrawal_threshold}, "
            f"one_per_month={self.one_withdrawal_per_month})>"
        )
