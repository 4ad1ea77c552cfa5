"""
Pytest configuration and fixtures.

The app is exercised through httpx's ASGITransport, which does not run
startup hooks, so the gateway, realtime hub, clock and database session
are all supplied through dependency overrides.
"""

import os

# Settings are read at import time
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-pytest-only")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from datetime import date, datetime  # noqa: E402
from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from renewal.core.auth import create_access_token  # noqa: E402
from renewal.core.deps import get_clock, get_gateway, get_realtime_hub  # noqa: E402
from renewal.db.session import get_db  # noqa: E402
from renewal.main import app  # noqa: E402
from renewal.models.base import Base  # noqa: E402
from renewal.services.realtime import RealtimeHub  # noqa: E402
from tests.factories import CompanyFactory, PlanFactory, UserFactory  # noqa: E402
from tests.fakes import FakeGateway  # noqa: E402


TEST_ASYNC_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Before the test company's 2024-06-01 due date
FIXED_NOW = datetime(2024, 5, 20, 12, 0, 0)


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_ASYNC_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def realtime_hub() -> RealtimeHub:
    return RealtimeHub()


@pytest.fixture
def fixed_clock():
    """Clock frozen at FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    fake_gateway: FakeGateway,
    realtime_hub: RealtimeHub,
    fixed_clock,
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with test doubles injected."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_gateway] = lambda: fake_gateway
    app.dependency_overrides[get_realtime_hub] = lambda: realtime_hub
    app.dependency_overrides[get_clock] = lambda: fixed_clock

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_plan(db_session: AsyncSession):
    return await PlanFactory.create(db_session)


@pytest_asyncio.fixture
async def test_company(db_session: AsyncSession, test_plan):
    """Company on the test plan, due 2024-06-01, with an 11-digit CPF."""
    return await CompanyFactory.create(
        db_session,
        plan_id=test_plan.id,
        due_date=date(2024, 6, 1),
        document="12345678901",
    )


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession, test_company):
    return await UserFactory.create(db_session, company_id=test_company.id)


@pytest.fixture
def auth_headers(test_user) -> dict:
    token = create_access_token({"user_id": test_user.id, "company_id": test_user.company_id})
    return {"Authorization": f"Bearer {token}"}
