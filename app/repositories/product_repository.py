"""
Product repository.

Read access to catalog products owned by the product module.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.product import Product
from app.repositories.base import BaseRepository


class ProductRepository(BaseRepository[Product]):
    """Product repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize product repository."""
        super().__init__(Product, session)

    async def get_names(self, product_ids: list[int]) -> dict[int, str]:
        """Map product IDs to names for read-time enrichment."""
        if not product_ids:
            return {}
        stmt = select(Product.id, Product.name).where(
            Product.id.in_(product_ids)
        )
        result = await self.session.execute(stmt)
        return {row.id: row.name for row in result.all()}
