"""
FailedNotification repository.

Data access layer for FailedNotification model.
"""

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.failed_notification import FailedNotification
from app.repositories.base import BaseRepository


class FailedNotificationRepository(BaseRepository[FailedNotification]):
    """Tracks undelivered notifications for retry."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize failed notification repository."""
        super().__init__(FailedNotification, session)

    async def get_unresolved(
        self, critical_only: bool = False
    ) -> list[FailedNotification]:
        """
        Get unresolved failed notifications.

        Args:
            critical_only: Only return critical notifications

        Returns:
            List of unresolved notifications
        """
        filters = {"resolved": False}
        if critical_only:
            filters["critical"] = True

        return await self.find_by(**filters)

    async def get_pending_for_retry(
        self, max_attempts: int = 5, limit: int = 100
    ) -> list[FailedNotification]:
        """
        Get failed notifications ready for retry.

        Critical first, then oldest first.

        Args:
            max_attempts: Maximum retry attempts
            limit: Maximum number of results

        Returns:
            List of pending notifications
        """
        stmt = (
            select(FailedNotification)
            .where(FailedNotification.resolved.is_(False))
            .where(FailedNotification.attempt_count < max_attempts)
            .order_by(
                desc(FailedNotification.critical),
                FailedNotification.created_at.asc(),
            )
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
