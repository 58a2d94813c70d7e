"""
Product model.

Catalog entry owned by the product module. The affiliate engine reads the
commission rate once, at accrual time.
"""

from decimal import Decimal

from sqlalchemy import DECIMAL, CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class Product(TimestampMixin, Base):
    """Product with its affiliate commission rate (percent, 0-100)."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint(
            "affiliate_commission >= 0 AND affiliate_commission <= 100",
            name="check_product_affiliate_commission_range",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    affiliate_commission: Mapped[Decimal] = mapped_column(
        DECIMAL(5, 2), nullable=False, default=Decimal("0")
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Product(id={self.id}, name={self.name!r}, "
            f"affiliate_commission={self.affiliate_commission})>"
        )
