"""
User service.

Account lookups shared by the affiliate services.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User
from app.repositories.user_repository import UserRepository
from app.services.exceptions import InvalidRole, NotFound


class UserService:
    """User lookups with affiliate role checks."""

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize user service.

        Args:
            session: Database session
        """
        self.session = session
        self.user_repo = UserRepository(session)

    async def get_by_id(self, user_id: int) -> User | None:
        """Get user by ID."""
        return await self.user_repo.get_by_id(user_id)

    async def get_affiliate(self, user_id: int) -> User:
        """
        Get a user that must be an affiliate.

        Args:
            user_id: User ID

        Returns:
            Affiliate user

        Raises:
            NotFound: If the user does not exist
            InvalidRole: If the user is not an affiliate
        """
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found", {"user_id": user_id})
        if not user.is_affiliate:
            raise InvalidRole(user_id)
        return user
