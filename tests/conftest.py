"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  Redis is replaced by an ``AsyncMock`` whose
``SET NX`` always succeeds.
"""

from typing import AsyncGenerator
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ride_escrow.domain.escrow import InMemoryLedger
from ride_escrow.domain.machine import RideStateMachine
from ride_escrow.infrastructure.database import Base
from ride_escrow.infrastructure import models  # noqa: F401  (registers tables)

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

RIDER = "rider-1"
DRIVER = "driver-1"
STRANGER = "stranger-1"


# ── Domain fixtures ───────────────────────────────────────────────────


@pytest.fixture
def machine() -> RideStateMachine:
    return RideStateMachine()


@pytest.fixture
def ledger() -> InMemoryLedger:
    return InMemoryLedger({RIDER: 1_000})


# ── Infrastructure fixtures ───────────────────────────────────────────


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database per test (one shared connection)."""
    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> AsyncMock:
    redis = AsyncMock()
    redis.set = AsyncMock(return_value=True)
    redis.eval = AsyncMock(return_value=1)
    return redis
