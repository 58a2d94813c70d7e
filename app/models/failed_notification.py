"""
FailedNotification model.

Tracks notification deliveries that raised, so the retry job can resend
them and admins can see what never reached the affiliate.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, utcnow


class FailedNotification(Base):
    """
    FailedNotification entity.

    Attributes:
        id: Primary key
        user_id: Recipient user id (no FK, user may be deleted)
        recipient: Email address the message was sent to
        notification_type: NotificationType value
        subject: Email subject
        message: Email body
        notification_metadata: Additional data (JSON)
        attempt_count: Number of delivery attempts
        last_error: Last error message
        resolved: Successfully sent flag
        critical: Raised after the retry budget is exhausted
        last_attempt_at: Last retry timestamp
        resolved_at: Resolution timestamp
    """

    __tablename__ = "failed_notifications"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    user_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    recipient: Mapped[str] = mapped_column(String(255), nullable=False)

    notification_type: Mapped[str] = mapped_column(
        String(100), nullable=False, index=True
    )
    subject: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)

    # "metadata" is reserved on declarative classes
    notification_metadata: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )

    # Retry tracking
    attempt_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    resolved: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    critical: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
    last_attempt_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"FailedNotification(id={self.id}, "
            f"recipient={self.recipient!r}, "
            f"type={self.notification_type!r}, "
            f"resolved={self.resolved})"
        )


Index(
    "idx_failed_notification_resolved_critical",
    FailedNotification.resolved,
    FailedNotification.critical,
)
