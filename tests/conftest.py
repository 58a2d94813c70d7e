"""
Pytest configuration and shared fixtures.

Every test gets a fresh in-memory SQLite database with the full schema.
"""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime
from decimal import Decimal
from itertools import count
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.models import (
    AffiliateCommission,
    Base,
    CommissionStatus,
    Order,
    OrderItem,
    PlatformSettings,
    Product,
    User,
    UserType,
)
from app.repositories.platform_settings_repository import (
    PlatformSettingsRepository,
)
from app.services.notification_service import NotificationService

# ==================== PYTEST CONFIGURATION ====================


def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


# ==================== DATABASE FIXTURES ====================

TEST_DATABASE_URL = os.getenv(
    "TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:"
)


@pytest_asyncio.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh database with all tables."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        engine = create_async_engine(
            TEST_DATABASE_URL,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        # Let SQLAlchemy emit BEGIN so SAVEPOINTs nest correctly
        @event.listens_for(engine.sync_engine, "connect")
        def do_connect(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(engine.sync_engine, "begin")
        def do_begin(conn):
            conn.exec_driver_sql("BEGIN")

    else:
        engine = create_async_engine(TEST_DATABASE_URL)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(
    async_engine: AsyncEngine,  # pylint: disable=redefined-outer-name
) -> AsyncGenerator[AsyncSession, None]:
    """
    Create database session for tests.

    Args:
        async_engine: Async database engine

    Yields:
        AsyncSession: Database session
    """
    async_session = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture
async def platform_settings(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
) -> PlatformSettings:
    """Default platform settings row (minimum withdrawal 1000 den)."""
    return await PlatformSettingsRepository(db_session).ensure_defaults()


# ==================== EMAIL FIXTURES ====================


class RecordingSender:
    """EmailSender that keeps every message in memory."""

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []

    async def send(self, recipient: str, subject: str, body: str) -> None:
        self.sent.append(
            {"recipient": recipient, "subject": subject, "body": body}
        )


class FailingSender:
    """EmailSender whose relay is always down."""

    def __init__(self) -> None:
        self.attempts = 0

    async def send(self, recipient: str, subject: str, body: str) -> None:
        self.attempts += 1
        raise ConnectionError("SMTP relay unavailable")


@pytest.fixture
def recording_sender() -> RecordingSender:
    """In-memory e-mail sender."""
    return RecordingSender()


@pytest.fixture
def failing_sender() -> FailingSender:
    """E-mail sender that always raises."""
    return FailingSender()


@pytest.fixture
def notification_service(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    recording_sender: RecordingSender,  # pylint: disable=redefined-outer-name
) -> NotificationService:
    """Notification service delivering into recording_sender."""
    return NotificationService(db_session, sender=recording_sender)


# ==================== MODEL FIXTURES ====================

_sequence = count(1)


@pytest.fixture
def create_user_helper(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
) -> Callable[..., Awaitable[User]]:
    """Factory creating users; affiliates by default."""

    async def _create_user(
        user_type: UserType = UserType.AFFILIATE,
        email: str | None = "",
        name: str | None = None,
    ) -> User:
        n = next(_sequence)
        user = User(
            email=f"user{n}@example.com" if email == "" else email,
            name=name or f"User {n}",
            user_type=user_type.value,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _create_user


@pytest_asyncio.fixture
async def test_affiliate(
    create_user_helper: Callable[..., Awaitable[User]],  # pylint: disable=redefined-outer-name
) -> User:
    """Create test affiliate."""
    return await create_user_helper(name="Test Affiliate")


@pytest_asyncio.fixture
async def test_customer(
    create_user_helper: Callable[..., Awaitable[User]],  # pylint: disable=redefined-outer-name
) -> User:
    """Create test customer (not an affiliate)."""
    return await create_user_helper(user_type=UserType.CUSTOMER)


@pytest.fixture
def create_product_helper(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
) -> Callable[..., Awaitable[Product]]:
    """Factory creating products with a commission rate."""

    async def _create_product(
        affiliate_commission: Decimal = Decimal("10"), name: str | None = None
    ) -> Product:
        product = Product(
            name=name or f"Product {next(_sequence)}",
            affiliate_commission=affiliate_commission,
        )
        db_session.add(product)
        await db_session.commit()
        await db_session.refresh(product)
        return product

    return _create_product


@pytest.fixture
def create_order_helper(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
) -> Callable[..., Awaitable[Order]]:
    """
    Factory creating orders.

    Lines are (product, unit_price, quantity) tuples.
    """

    async def _create_order(
        lines: list[tuple[Product | None, Decimal, int]],
        referral_code: str | None = None,
        affiliate_id: int | None = None,
    ) -> Order:
        order = Order(
            order_number=f"ORD-{next(_sequence):06d}",
            referral_code=referral_code,
            affiliate_id=affiliate_id,
        )
        order.items = [
            OrderItem(
                product_id=product.id if product else None,
                price=price,
                quantity=quantity,
            )
            for product, price, quantity in lines
        ]
        db_session.add(order)
        await db_session.commit()
        await db_session.refresh(order)
        return order

    return _create_order


@pytest.fixture
def create_commission_helper(
    db_session: AsyncSession,  # pylint: disable=redefined-outer-name
    create_order_helper: Callable[..., Awaitable[Order]],  # pylint: disable=redefined-outer-name
) -> Callable[..., Awaitable[AffiliateCommission]]:
    """
    Factory creating a ledger row directly, backed by its own order.

    Lets balance and settlement tests set amounts, statuses and creation
    times without going through accrual.
    """

    async def _create_commission(
        affiliate: User,
        amount: Decimal,
        status: CommissionStatus = CommissionStatus.APPROVED,
        created_at: datetime | None = None,
    ) -> AffiliateCommission:
        order = await create_order_helper(
            [(None, amount, 1)], affiliate_id=affiliate.id
        )
        commission = AffiliateCommission(
            affiliate_id=affiliate.id,
            order_id=order.id,
            order_item_id=order.items[0].id,
            product_id=None,
            order_item_amount=amount,
            commission_percent=Decimal("100"),
            commission_amount=amount,
            quantity=1,
            status=status.value,
        )
        if created_at is not None:
            commission.created_at = created_at
        db_session.add(commission)
        await db_session.commit()
        await db_session.refresh(commission)
        return commission

    return _create_commission
