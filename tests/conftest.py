"""
Pytest configuration and shared fixtures
"""

import pytest
import pytest_asyncio
from datetime import datetime, timedelta
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from src.models import Base
from src.models.coupon import Coupon, DiscountType
from src.models.order import Order, OrderStatus
from src.models.user import User, UserRole
from src.services.audit_log_service import AdminActivityLogWriter
from src.utils.security import JWTManager
from src.main import app


# Test database URL (in-memory SQLite)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed clock for validity window tests
NOW = datetime(2026, 3, 1, 12, 0, 0)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """
    Create a fresh in-memory SQLite engine (with schema) for each test.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="function")
def audit_log(session_factory) -> AdminActivityLogWriter:
    """Audit log writer using its own sessions on the test database."""
    return AdminActivityLogWriter(session_factory)


@pytest_asyncio.fixture(scope="function")
async def async_client(
    db_session: AsyncSession, audit_log: AdminActivityLogWriter
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create an async HTTP client for testing FastAPI endpoints.
    Override the database and audit log dependencies to use the test database.
    """
    from src.models.base import get_db
    from src.api.dependencies import get_audit_log_writer

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_audit_log_writer] = lambda: audit_log

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()


async def _create_user(db_session: AsyncSession, email: str, role: UserRole) -> User:
    user = User(
        id=uuid4(),
        email=email,
        name=email.split("@")[0],
        role=role.value,
        status="active",
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def test_user(db_session: AsyncSession) -> User:
    """Create a customer for authentication."""
    return await _create_user(db_session, "test@example.com", UserRole.CUSTOMER)


@pytest_asyncio.fixture(scope="function")
async def other_user(db_session: AsyncSession) -> User:
    """Create a second customer."""
    return await _create_user(db_session, "other@example.com", UserRole.CUSTOMER)


@pytest_asyncio.fixture(scope="function")
async def admin_user(db_session: AsyncSession) -> User:
    """Create an admin."""
    return await _create_user(db_session, "admin@upwear.com", UserRole.ADMIN)


def _bearer(user: User) -> dict:
    token = JWTManager.create_access_token(
        {"sub": str(user.id), "role": user.role},
        expires_delta=timedelta(hours=1),
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def auth_headers(test_user: User) -> dict:
    """Bearer token headers for the customer."""
    return _bearer(test_user)


@pytest.fixture(scope="function")
def admin_headers(admin_user: User) -> dict:
    """Bearer token headers for the admin."""
    return _bearer(admin_user)


@pytest.fixture(scope="function")
def make_coupon(db_session: AsyncSession):
    """
    Factory inserting a coupon directly (bypassing the repository).

    Defaults: active, public, 10% off, no limits, no validity window.
    """

    async def _make_coupon(**overrides) -> Coupon:
        values = {
            "code": "SAVE10",
            "name": "10% off",
            "discount_type": DiscountType.PERCENTAGE.value,
            "discount_value": Decimal("10"),
            "used_count": 0,
            "is_active": True,
            "is_public": True,
            "first_time_customers_only": False,
            "extra_metadata": {},
        }
        values.update(overrides)
        coupon = Coupon(**values)
        db_session.add(coupon)
        await db_session.commit()
        await db_session.refresh(coupon)
        return coupon

    return _make_coupon


@pytest.fixture(scope="function")
def make_order(db_session: AsyncSession):
    """Factory inserting an order for a user."""

    async def _make_order(
        user: User,
        total_amount: Decimal = Decimal("100.00"),
        status: OrderStatus = OrderStatus.PENDING,
    ) -> Order:
        order = Order(
            order_number=f"ORD-{uuid4().hex[:12].upper()}",
            user_id=user.id,
            total_amount=total_amount,
            status=status.value,
        )
        db_session.add(order)
        await db_session.commit()
        await db_session.refresh(order)
        return order

    return _make_order
