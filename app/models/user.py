"""
User model.

Marketplace account as seen by the affiliate engine. Owned by the user
module; only identity, contact and account type are read here.
"""

from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin
from app.models.enums import UserType


class User(TimestampMixin, Base):
    """User model - sellers, affiliates, customers and admins."""

    __tablename__ = "users"

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    email: Mapped[str | None] = mapped_column(
        String(255), nullable=True, unique=True, index=True
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    user_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=UserType.CUSTOMER.value, index=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    @property
    def is_affiliate(self) -> bool:
        """Check if user takes part in the affiliate program."""
        return self.user_type == UserType.AFFILIATE.value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id}, email={self.email!r}, "
            f"user_type={self.user_type})>"
        )
