"""
AffiliateCommission model.

Per order line accrual owed to an affiliate. Amounts are snapshots taken
when the order is placed and are never recomputed.
"""

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    DECIMAL,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin
from app.models.enums import CommissionStatus

if TYPE_CHECKING:
    from app.models.order import Order
    from app.models.product import Product


class AffiliateCommission(TimestampMixin, Base):
    """
    AffiliateCommission entity.

    Attributes:
        id: Primary key
        affiliate_id: Affiliate earning the commission
        order_id: Source order
        order_item_id: Source order line (one commission per line)
        product_id: Product sold
        order_item_amount: unit price * quantity at order time
        commission_percent: Product rate at order time
        commission_amount: order_item_amount * commission_percent / 100
        quantity: Units sold
        status: pending -> approved -> paid, or cancelled
    """

    __tablename__ = "affiliate_commissions"
    __table_args__ = (
        UniqueConstraint(
            "order_id", "order_item_id", name="uq_commission_order_item"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    affiliate_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True
    )
    order_item_id: Mapped[int] = mapped_column(
        ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[int | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"), nullable=True
    )

    # Snapshots
    order_item_amount: Mapped[Decimal] = mapped_column(
        DECIMAL(18, 8), nullable=False
    )
    commission_percent: Mapped[Decimal] = mapped_column(
        DECIMAL(5, 2), nullable=False
    )
    commission_amount: Mapped[Decimal] = mapped_column(
        DECIMAL(18, 8), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CommissionStatus.PENDING.value,
        index=True,
    )

    order: Mapped["Order"] = relationship("Order", lazy="joined")
    product: Mapped[Optional["Product"]] = relationship(
        "Product", lazy="joined"
    )

    @property
    def is_settled(self) -> bool:
        """Check if commission reached a terminal status."""
        return self.status in (
            CommissionStatus.PAID.value,
            CommissionStatus.CANCELLED.value,
        )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"AffiliateCommission(id={self.id}, "
            f"affiliate_id={self.affiliate_id}, "
            f"order_id={self.order_id}, "
            f"amount={self.commission_amount}, "
            f"status={self.status})"
        )


# Composite indexes
Index(
    "idx_commission_affiliate_status",
    AffiliateCommission.affiliate_id,
    AffiliateCommission.status,
)
Index(
    "idx_commission_affiliate_created",
    AffiliateCommission.affiliate_id,
    AffiliateCommission.created_at,
)


class AffiliateOrderAccrual(TimestampMixin, Base):
    """
    Marker written once per attributed order when it is accrued.

    Present even when no line earned a commission, so a repeated
    accrual neither recounts the order nor looks at its lines again.
    """

    __tablename__ = "affiliate_order_accruals"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    affiliate_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    commission_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"AffiliateOrderAccrual(order_id={self.order_id}, "
            f"affiliate_id={self.affiliate_id}, "
            f"commissions={self.commission_count})"
        )
