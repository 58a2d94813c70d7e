"""
Order repository.

Read access to orders owned by the order module.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models.order import Order, OrderItem
from app.repositories.base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    """Order repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize order repository."""
        super().__init__(Order, session)

    async def get_items_with_products(self, order_id: int) -> list[OrderItem]:
        """
        Get an order's line items with their products loaded.

        Args:
            order_id: Order ID

        Returns:
            Line items in insertion order
        """
        stmt = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .options(selectinload(OrderItem.product))
            .order_by(OrderItem.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
