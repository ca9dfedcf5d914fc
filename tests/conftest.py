"""Test fixtures — a fresh in-memory database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own in-memory SQLite engine (StaticPool, so every
   session shares the one connection) with all tables created.
2. get_db is overridden so each request opens its own session on that
   engine, just like production — commits are real, and the whole
   database disappears when the engine is disposed.
3. Auth is NOT mocked: tests register and log in through the API, and
   cookies travel in the httpx client's cookie jar.

Env vars are set before importing the app so Settings picks them up.
"""

import os

os.environ.setdefault("TASKBOARD_ENVIRONMENT", "test")
os.environ.setdefault("TASKBOARD_DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("TASKBOARD_JWT_SECRET", "test-secret-key-with-enough-length-1234")
os.environ.setdefault("TASKBOARD_BCRYPT_ROUNDS", "4")

import uuid  # noqa: E402

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from taskboard.db.engine import build_engine, get_db  # noqa: E402
from taskboard.db.models import Base  # noqa: E402
from taskboard.main import app  # noqa: E402

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"
PASSWORD = "password_123"


@pytest_asyncio.fixture()
async def session_factory():
    """Per-test engine with all tables created."""
    engine = build_engine(TEST_DB_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    try:
        yield factory
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """Direct session for inspecting rows the API wrote."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def make_client(session_factory):
    """Factory for independent clients (one cookie jar per simulated user)."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    clients: list[AsyncClient] = []

    def _make() -> AsyncClient:
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(ac)
        return ac

    try:
        yield _make
    finally:
        for ac in clients:
            await ac.aclose()
        app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(make_client):
    """A single anonymous client."""
    return make_client()


async def register(client: AsyncClient, name: str, password: str = PASSWORD) -> dict:
    """Register a user through the API; cookies land in client's jar."""
    email = f"{name}-{uuid.uuid4().hex[:8]}@example.com"
    r = await client.post(
        "/api/auth/register",
        json={"username": name, "email": email, "password": password},
    )
    assert r.status_code == 201, r.text
    data = r.json()
    data["email"] = email
    data["password"] = password
    return data


@pytest_asyncio.fixture()
async def alice(make_client):
    """(client, registration response) for a signed-in user 'alice'."""
    ac = make_client()
    return ac, await register(ac, "alice")


@pytest_asyncio.fixture()
async def bob(make_client):
    ac = make_client()
    return ac, await register(ac, "bob")


@pytest_asyncio.fixture()
async def carol(make_client):
    ac = make_client()
    return ac, await register(ac, "carol")
