"""API test fixtures — FastAPI test client bound to the in-memory test database.

Invariants:
    - get_coordinator dependency overridden to hand out test-DB coordinators
    - db_manager patched so the readiness probe hits the test engine
    - The rate limiter starts every test with an empty budget

Design Decisions:
    - httpx ASGITransport: no lifespan, so init_db never touches the configured URL
"""

import pytest
from httpx import ASGITransport, AsyncClient

import pingu.infrastructure.database as db_module
from pingu.api.rate_limit import limiter
from pingu.infrastructure.database import DatabaseSessionManager, get_coordinator
from pingu.main import app


@pytest.fixture
async def client(test_engine, test_session_factory, coordinator):
    """FastAPI test client with the coordinator dependency overridden."""
    app.dependency_overrides[get_coordinator] = lambda: coordinator

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    fake_manager._query_timeout_seconds = 5.0
    db_module.db_manager = fake_manager
    limiter.reset()

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def register(client):
    """POST a registration and return the created user's JSON body."""

    async def _register(username: str, email: str | None = None):
        res = await client.post(
            "/api/v1/authentication/user",
            json={
                "username": username,
                "email": email or f"{username}@example.com",
                "password": "secret123",
            },
        )
        assert res.status_code == 201, res.text
        return res.json()

    return _register
