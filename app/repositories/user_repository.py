"""
User repository.

Data access layer for User model.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> User | None:
        """
        Get user by email.

        Args:
            email: Email address

        Returns:
            User or None
        """
        return await self.get_by(email=email)

    async def lock_for_update(self, user_id: int) -> User | None:
        """
        Lock the user row for the rest of the transaction.

        Uses NOWAIT so a concurrent holder surfaces as OperationalError
        instead of blocking; callers retry.

        Args:
            user_id: User ID

        Returns:
            Locked user or None if not found
        """
        stmt = (
            select(User)
            .where(User.id == user_id)
            .with_for_update(nowait=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
