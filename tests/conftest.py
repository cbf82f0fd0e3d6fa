"""Root conftest — shared test configuration and database fixtures.

Invariants:
    - Every test gets a fresh in-memory SQLite database with the full schema
    - Tests never touch a real PostgreSQL instance

Design Decisions:
    - SQLite in-memory: fast, no external dependency; aiosqlite shares one connection
      across sessions for :memory: URLs, so every unit sees the same data
    - make_user creates rows through the real store so version/timestamps are realistic
"""

import itertools
import os

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")

from pingu.core.user_snapshot import NewUser  # noqa: E402
from pingu.db.base import Base  # noqa: E402
from pingu.infrastructure.transaction import TransactionCoordinator  # noqa: E402
import pingu.models  # noqa: E402, F401


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
def coordinator(test_session_factory):
    return TransactionCoordinator(test_session_factory, query_timeout_seconds=5.0)


@pytest.fixture
def make_user(coordinator):
    """Factory: create an unpaired user and return its committed snapshot."""
    counter = itertools.count(1)

    async def _make(username: str | None = None, email: str | None = None):
        n = next(counter)
        username = username or f"user{n}"
        email = email or f"{username}@example.com"
        async with coordinator.atomically() as store:
            return await store.create(
                NewUser(username=username, email=email, password_hash="not-a-hash"),
            )

    return _make


@pytest.fixture
def fetch_user(coordinator):
    """Read a user's committed snapshot in its own unit."""

    async def _fetch(user_id):
        async with coordinator.atomically() as store:
            return await store.get(user_id)

    return _fetch
