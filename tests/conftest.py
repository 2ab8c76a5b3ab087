"""
Pytest fixtures for testing.

Provides:
- Async database session with rollback
- Test client with the database session override
- Metrics store pinned to a fixed clock
- Event factory
"""

from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from flagmetrics.main import app
from flagmetrics.models.base import Base
from flagmetrics.core.metrics import models  # noqa: F401
from flagmetrics.core.metrics import ClientMetricsStore, MetricEvent
from flagmetrics.api.dependencies.database import get_db


# Test database URL (SQLite in-memory for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Fixed "now" for store tests, on an hour boundary
NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Create database session with automatic rollback.

    Each test gets a fresh transaction that's rolled back after.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest_asyncio.fixture(scope="function")
async def client(db: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client with database session override.
    """

    async def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def store(db: AsyncSession) -> ClientMetricsStore:
    """Metrics store whose clock is pinned to NOW."""
    return ClientMetricsStore(db, clock=lambda: NOW)


# ============ Factory Helpers ============


def make_event(
    feature_name: str = "f1",
    app_name: str = "a1",
    environment: str = "prod",
    timestamp: datetime = NOW,
    yes: int = 0,
    no: int = 0,
    variants: dict[str, int] | None = None,
) -> MetricEvent:
    """Build a metric event with test defaults."""
    return MetricEvent(
        feature_name=feature_name,
        app_name=app_name,
        environment=environment,
        timestamp=timestamp,
        yes=yes,
        no=no,
        variants=variants or {},
    )


@pytest.fixture
def event_factory():
    return make_event
