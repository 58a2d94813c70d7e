"""
Notification retry service.

Retries failed e-mail deliveries with a growing delay between attempts.
"""

from datetime import timedelta

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import as_utc, utcnow
from app.repositories.failed_notification_repository import (
    FailedNotificationRepository,
)
from app.services.notification_service import EmailSender, SmtpEmailSender

# Retry configuration: 1min, 5min, 15min, 1h, 2h
RETRY_DELAYS_MINUTES = [1, 5, 15, 60, 120]
MAX_RETRIES = 5


class NotificationRetryService:
    """Notification retry service with backoff."""

    def __init__(
        self, session: AsyncSession, sender: EmailSender | None = None
    ) -> None:
        """Initialize notification retry service."""
        self.session = session
        self.sender = sender or SmtpEmailSender()
        self.failed_repo = FailedNotificationRepository(session)

    async def process_pending_retries(self) -> dict:
        """
        Process pending failed notifications.

        Called by background job.

        Returns:
            Dict with processed, successful, failed, skipped, gave_up counts
        """
        now = utcnow()

        pending = await self.failed_repo.get_pending_for_retry(
            max_attempts=MAX_RETRIES, limit=100
        )

        stats = {
            "processed": len(pending),
            "successful": 0,
            "failed": 0,
            "skipped": 0,
            "gave_up": 0,
        }

        if not pending:
            logger.debug("No failed notifications to retry")
            return stats

        logger.info(f"Processing {len(pending)} failed notifications...")

        for notification in pending:
            # Delay grows with the number of attempts already made
            attempt_idx = min(
                notification.attempt_count - 1,
                len(RETRY_DELAYS_MINUTES) - 1,
            )
            last_attempt = notification.last_attempt_at or notification.created_at
            due_at = as_utc(last_attempt) + timedelta(
                minutes=RETRY_DELAYS_MINUTES[max(attempt_idx, 0)]
            )
            if now < due_at:
                stats["skipped"] += 1
                continue

            try:
                await self.sender.send(
                    notification.recipient,
                    notification.subject,
                    notification.message,
                )
            except Exception as send_error:
                attempts = notification.attempt_count + 1
                notification.attempt_count = attempts
                notification.last_error = str(send_error)
                notification.last_attempt_at = now
                stats["failed"] += 1

                logger.warning(
                    "Notification retry failed",
                    extra={
                        "id": notification.id,
                        "recipient": notification.recipient,
                        "type": notification.notification_type,
                        "attempt_count": attempts,
                        "error": str(send_error),
                    },
                )

                if attempts >= MAX_RETRIES:
                    notification.critical = True
                    stats["gave_up"] += 1
                    logger.error(
                        "Notification gave up after max retries",
                        extra={
                            "id": notification.id,
                            "recipient": notification.recipient,
                            "type": notification.notification_type,
                        },
                    )
                continue

            notification.resolved = True
            notification.resolved_at = now
            notification.last_attempt_at = now
            stats["successful"] += 1

            logger.info(
                "Notification retry successful",
                extra={
                    "id": notification.id,
                    "recipient": notification.recipient,
                    "type": notification.notification_type,
                    "attempt_count": notification.attempt_count,
                },
            )

        await self.session.commit()

        logger.info("Notification retry batch complete", extra=stats)
        return stats

    async def get_statistics(self) -> dict:
        """
        Get statistics about failed notifications.

        Returns:
            Dict with unresolved, critical and per-type counts
        """
        unresolved = await self.failed_repo.get_unresolved()

        by_type: dict[str, int] = {}
        for notification in unresolved:
            ntype = notification.notification_type
            by_type[ntype] = by_type.get(ntype, 0) + 1

        return {
            "total": await self.failed_repo.count(),
            "unresolved": len(unresolved),
            "critical": sum(1 for n in unresolved if n.critical),
            "by_type": by_type,
        }

    async def resolve_notification(self, notification_id: int) -> bool:
        """
        Manually resolve failed notification (admin action).

        Args:
            notification_id: Notification ID

        Returns:
            Success flag
        """
        notification = await self.failed_repo.get_by_id(notification_id)

        if not notification:
            logger.warning(
                "Notification not found for manual resolution",
                extra={"notification_id": notification_id},
            )
            return False

        notification.resolved = True
        notification.resolved_at = utcnow()
        await self.session.commit()

        logger.info(
            "Notification manually resolved",
            extra={
                "id": notification_id,
                "recipient": notification.recipient,
                "type": notification.notification_type,
            },
        )
        return True
