"""
Pytest configuration and shared fixtures for testing.
Sets up an in-memory SQLite database and an ASGI test client.
"""

import os

# Configure the app before any app imports
os.environ["TEST_MODE"] = "1"  # disables rate limiting
os.environ["SKIP_ENV_FILE"] = "1"
os.environ["APP_ENV"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["DB_URL"] = "sqlite+aiosqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-minimum-32-chars"
os.environ["BCRYPT_ROUNDS"] = "4"  # fast hashing for tests
os.environ["ENABLE_METRICS"] = "true"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db import build_engine, get_session, init_db


@pytest_asyncio.fixture(scope="function")
async def test_db_engine():
    """Fresh in-memory database per test, schema created by init_db."""
    # StaticPool keeps the single in-memory connection alive across sessions
    engine = build_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(test_db_engine):
    return async_sessionmaker(test_db_engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture(scope="function")
async def session(session_maker):
    """A database session for CRUD-level tests."""
    async with session_maker() as s:
        yield s


@pytest_asyncio.fixture(scope="function")
async def client(session_maker):
    """HTTP client with the request session dependency pointed at the test database."""
    async def _get_test_session():
        async with session_maker() as s:
            yield s

    app.dependency_overrides[get_session] = _get_test_session
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


async def register(client: AsyncClient, username: str, password: str = "pw1") -> dict:
    """Register a user through the API and return the JSON body."""
    response = await client.post("/api/register", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return response.json()


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def alice(client):
    """Registered user 'alice' with their auth response."""
    return await register(client, "alice", "pw1")


@pytest_asyncio.fixture
async def bob(client):
    """Registered user 'bob' with their auth response."""
    return await register(client, "bob", "pw2")


@pytest.fixture
def sample_idea():
    """Sample idea payload for testing."""
    return {
        "title": "Ship it",
        "notes": "Start with the API",
        "categories": ["work", "side-project"],
        "excitement": 8,
    }
