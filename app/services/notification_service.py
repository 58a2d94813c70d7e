"""
Notification service.

Sends auxiliary e-mails (OTP codes, withdrawal notices). Delivery always
runs after the ledger change has been committed; a failed delivery is
logged and stored as a FailedNotification for the retry job, never
raised to the caller.
"""

from email.message import EmailMessage
from typing import Any, Protocol

import aiosmtplib
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.enums import NotificationType
from app.models.user import User
from app.models.withdrawal import AffiliateWithdrawal
from app.repositories.failed_notification_repository import (
    FailedNotificationRepository,
)
from app.utils.money import to_money


class EmailSender(Protocol):
    """Anything that can deliver a plain-text e-mail."""

    async def send(self, recipient: str, subject: str, body: str) -> None:
        ...


class SmtpEmailSender:
    """EmailSender backed by an SMTP relay."""

    def __init__(
        self,
        hostname: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool | None = None,
        mail_from: str | None = None,
    ) -> None:
        self.hostname = hostname or settings.smtp_host
        self.port = port or settings.smtp_port
        self.username = username if username is not None else settings.smtp_username
        self.password = password if password is not None else settings.smtp_password
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls
        self.mail_from = mail_from or settings.mail_from

    async def send(self, recipient: str, subject: str, body: str) -> None:
        """
        Send a plain-text e-mail.

        Raises:
            aiosmtplib.SMTPException: On delivery failure
        """
        message = EmailMessage()
        message["From"] = self.mail_from
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)

        async with aiosmtplib.SMTP(
            hostname=self.hostname,
            port=self.port,
            start_tls=self.use_tls,
        ) as smtp:
            if self.username:
                await smtp.login(self.username, self.password or "")
            await smtp.send_message(message)

        logger.debug(f"Email sent to {recipient}: {subject}")


class NotificationService:
    """E-mail notifications with failure tracking."""

    def __init__(
        self, session: AsyncSession, sender: EmailSender | None = None
    ) -> None:
        """Initialize notification service."""
        self.session = session
        self.sender = sender or SmtpEmailSender()
        self.failed_repo = FailedNotificationRepository(session)

    async def send_email(
        self,
        recipient: str,
        subject: str,
        message: str,
        notification_type: NotificationType,
        user_id: int | None = None,
        metadata: dict[str, Any] | None = None,
        critical: bool = False,
    ) -> bool:
        """
        Send an e-mail, recording it for retry on failure.

        Args:
            recipient: Destination address
            subject: Subject line
            message: Plain-text body
            notification_type: Kind of notification
            user_id: Recipient user ID if known
            metadata: Extra data stored with a failed attempt
            critical: Retry this one first

        Returns:
            True if delivered, False if queued for retry
        """
        try:
            await self.sender.send(recipient, subject, message)
            return True
        except Exception as e:
            logger.warning(
                f"Notification delivery failed: {e}",
                extra={
                    "recipient": recipient,
                    "type": notification_type.value,
                    "user_id": user_id,
                },
            )
            await self._record_failure(
                recipient=recipient,
                subject=subject,
                message=message,
                notification_type=notification_type,
                user_id=user_id,
                metadata=metadata,
                critical=critical,
                error=str(e),
            )
            return False

    async def _record_failure(
        self,
        recipient: str,
        subject: str,
        message: str,
        notification_type: NotificationType,
        user_id: int | None,
        metadata: dict[str, Any] | None,
        critical: bool,
        error: str,
    ) -> None:
        try:
            await self.failed_repo.create(
                user_id=user_id,
                recipient=recipient,
                notification_type=notification_type.value,
                subject=subject,
                message=message,
                notification_metadata=metadata,
                critical=critical,
                last_error=error,
            )
            await self.session.commit()
        except SQLAlchemyError as db_error:
            await self.session.rollback()
            logger.error(
                f"Failed to record undelivered notification: {db_error}",
                extra={"recipient": recipient, "type": notification_type.value},
            )

    async def send_payment_method_otp(
        self, user: User, code: str, expires_minutes: int
    ) -> bool:
        """E-mail a payout-detail OTP code to an affiliate."""
        subject = "Your verification code for payment method update"
        body = (
            f"Hello {user.name or 'there'},\n\n"
            f"Your verification code is: {code}\n\n"
            f"The code expires in {expires_minutes} minutes. "
            "If you did not request a change to your payment method, "
            "please contact support.\n"
        )
        return await self.send_email(
            recipient=user.email,
            subject=subject,
            message=body,
            notification_type=NotificationType.PAYMENT_METHOD_OTP,
            user_id=user.id,
            critical=True,
        )

    async def notify_withdrawal_requested(
        self, withdrawal: AffiliateWithdrawal, affiliate: User
    ) -> bool:
        """Tell the platform admins about a new withdrawal request."""
        recipient = settings.admin_notification_email
        if not recipient:
            logger.debug(
                "Admin notification e-mail not configured, skipping",
                extra={"withdrawal_id": withdrawal.id},
            )
            return False

        body = (
            f"Affiliate {affiliate.name or affiliate.email} (id {affiliate.id}) "
            f"requested a withdrawal of {to_money(withdrawal.amount)} den.\n"
            f"Withdrawal id: {withdrawal.id}\n"
        )
        return await self.send_email(
            recipient=recipient,
            subject=f"New affiliate withdrawal request #{withdrawal.id}",
            message=body,
            notification_type=NotificationType.WITHDRAWAL_REQUESTED,
            metadata={"withdrawal_id": withdrawal.id},
        )

    async def notify_withdrawal_status_changed(
        self, withdrawal: AffiliateWithdrawal, affiliate: User
    ) -> bool:
        """Tell an affiliate that their withdrawal changed status."""
        if not affiliate.email:
            return False

        body = (
            f"Your withdrawal #{withdrawal.id} of "
            f"{to_money(withdrawal.amount)} den is now {withdrawal.status}.\n"
        )
        if withdrawal.notes:
            body += f"\nNotes: {withdrawal.notes}\n"

        return await self.send_email(
            recipient=affiliate.email,
            subject=f"Withdrawal #{withdrawal.id} {withdrawal.status}",
            message=body,
            notification_type=NotificationType.WITHDRAWAL_STATUS_CHANGED,
            user_id=affiliate.id,
            metadata={
                "withdrawal_id": withdrawal.id,
                "status": withdrawal.status,
            },
        )
