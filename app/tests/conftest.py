"""
Pytest configuration and shared fixtures for the bakery distribution test suite.

This module provides:
- Database fixtures (in-memory SQLite for fast tests)
- FastAPI async client bound to the test session
- User, store, product and order factories
- Token helpers and an AsyncSession test double
"""

import os

# Settings are read at import time; pin them before the app is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["AUTO_SCHEDULING_ENABLED"] = "true"
os.environ["EUR_TO_SYP_RATE"] = "15000"

from datetime import date, timedelta
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from main import app
from auth.auth_handler import sign_jwt
from core.db import Base, get_db
from models.order import Order, OrderItem
from models.product import Product
from models.store import Store
from models.user import User
import auth.passwords_handler as passwords_handler

# Test Database Configuration
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_PASSWORD = "testpass123"


@pytest.fixture
async def async_engine():
    """Create async engine for testing with in-memory SQLite."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def async_db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create async database session for testing."""
    async_session = async_sessionmaker(
        async_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        yield session


@pytest.fixture
async def async_client(async_db_session) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client with database dependency override."""

    async def override_get_db():
        yield async_db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# Test Data Factories
async def create_user(session: AsyncSession, username: str, role: str = "distributor", **fields) -> User:
    user = User(
        username=username,
        email=fields.pop("email", f"{username}@example.com"),
        password=await passwords_handler.hash_password_async(TEST_PASSWORD),
        full_name=fields.pop("full_name", username.replace("_", " ").title()),
        role=role,
        **fields,
    )
    session.add(user)
    await session.commit()
    return user


def auth_headers_for(user: User) -> dict:
    """Bearer header for `user` without going through /login."""
    token = sign_jwt(user.id, user.role)["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def admin_user(async_db_session) -> User:
    return await create_user(async_db_session, "admin_user", role="admin")


@pytest.fixture
async def manager_user(async_db_session) -> User:
    return await create_user(async_db_session, "manager_user", role="manager")


@pytest.fixture
async def distributor_user(async_db_session) -> User:
    return await create_user(
        async_db_session,
        "north_driver",
        role="distributor",
        delivery_zone="north",
        performance_rating=92,
    )


@pytest.fixture
async def viewer_user(async_db_session) -> User:
    return await create_user(async_db_session, "viewer_user", role="viewer")


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return auth_headers_for(admin_user)


@pytest.fixture
def manager_headers(manager_user) -> dict:
    return auth_headers_for(manager_user)


@pytest.fixture
def distributor_headers(distributor_user) -> dict:
    return auth_headers_for(distributor_user)


@pytest.fixture
def viewer_headers(viewer_user) -> dict:
    return auth_headers_for(viewer_user)


@pytest.fixture
async def test_store(async_db_session) -> Store:
    store = Store(
        name="Corner Market",
        owner_name="Samer",
        phone="+963911000001",
        latitude=33.5138,
        longitude=36.2765,
        delivery_zone="north",
    )
    async_db_session.add(store)
    await async_db_session.commit()
    return store


@pytest.fixture
async def test_products(async_db_session) -> list[Product]:
    products = [
        Product(name="Arabic Bread", category="bread", unit="bag",
                price_eur=2.0, price_syp=30000, cost_eur=1.0, cost_syp=15000, stock_quantity=100),
        Product(name="Croissant", category="pastry", unit="piece",
                price_eur=1.5, price_syp=22500, cost_eur=0.5, cost_syp=7500, stock_quantity=50),
    ]
    async_db_session.add_all(products)
    await async_db_session.commit()
    return products


@pytest.fixture
async def confirmed_order(async_db_session, test_store, test_products, admin_user) -> Order:
    """A confirmed order for tomorrow with no scheduling draft yet."""
    bread = test_products[0]
    order = Order(
        order_number=f"ORD-{date.today():%Y%m%d}-0001",
        store_id=test_store.id,
        store_name=test_store.name,
        order_date=date.today(),
        delivery_date=date.today() + timedelta(days=3),
        total_amount_eur=20.0,
        total_amount_syp=300000,
        final_amount_eur=20.0,
        final_amount_syp=300000,
        status="confirmed",
        created_by=admin_user.id,
        created_by_name=admin_user.full_name,
        items=[
            OrderItem(
                product_id=bread.id,
                product_name=bread.name,
                unit=bread.unit,
                quantity=10,
                unit_price_eur=2.0,
                unit_price_syp=30000,
                total_price_eur=20.0,
                total_price_syp=300000,
                final_price_eur=20.0,
                final_price_syp=300000,
            )
        ],
    )
    async_db_session.add(order)
    await async_db_session.commit()
    return order


# Common Test Doubles
@pytest.fixture
def mock_async_session():
    """Provide a reusable AsyncSession-like test double.

    - `add` and `delete` behave like their SQLAlchemy counterparts (sync / async)
    - `flush`, `commit`, `rollback`, `refresh`, `execute` are `AsyncMock`
    Tests can override `execute.side_effect` as needed.
    """
    session = AsyncMock()

    # `add` is synchronous on SQLAlchemy session
    session.add = MagicMock()

    # Async methods
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.delete = AsyncMock()
    session.execute = AsyncMock()

    return session


def scalar_result(value):
    """Result double for `(await db.execute(...)).scalar_one_or_none()` style calls."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar.return_value = value
    result.first.return_value = value
    return result
