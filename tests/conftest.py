"""
Fellowship Backend — Test Configuration (conftest.py)
=======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh SQLite file (aiosqlite) with all tables
       created, so engines and routes run against a real relational store
       with real uniqueness constraints.

Fixture Hierarchy (all function-scoped):
    db_engine
    └── session_factory
        ├── friending / following     engines under test
        └── test_client               HTTPX AsyncClient over create_app()
            └── signup                register + log in, returns auth headers
    alice / bob / carol               opaque identities for engine tests
"""

import os

# Override settings BEFORE any fellowship imports: the default engine is
# built at import time from DATABASE_URL
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./fellowship_test.db"
os.environ["SESSION_SECRET"] = "test-session-secret-not-real"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Awaitable, Callable, Dict  # noqa: E402
from uuid import uuid4  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from fellowship.database import build_engine, build_session_factory, create_tables  # noqa: E402
from fellowship.main import create_app  # noqa: E402
from fellowship.services.following import FollowingEngine  # noqa: E402
from fellowship.services.friending import FriendingEngine  # noqa: E402
from fellowship.services.sessioning import SessionIssuer  # noqa: E402


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """A file-backed SQLite database with every table created."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'fellowship.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


# ══════════════════════════════════════════════════════════════════════════
# Engines and identities
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def friending(session_factory):
    return FriendingEngine(session_factory)


@pytest.fixture
def following(session_factory):
    return FollowingEngine(session_factory)


@pytest.fixture
def alice():
    return uuid4()


@pytest.fixture
def bob():
    return uuid4()


@pytest.fixture
def carol():
    return uuid4()


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(session_factory):
    """
    HTTPX AsyncClient wired to an app built on the per-test database.

    ASGITransport does not run the lifespan, so no startup probe happens.
    """
    app = create_app(
        session_factory=session_factory,
        session_issuer=SessionIssuer(secret="test-session-secret-not-real"),
    )
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def signup(test_client) -> Callable[[str], Awaitable[Dict[str, str]]]:
    """
    Register `username`, log in, and return the Authorization header.

    Usage:
        headers = await signup("alice")
        await test_client.get("/friends", headers=headers)
    """
    async def _signup(username: str) -> Dict[str, str]:
        created = await test_client.post("/users", json={"username": username})
        assert created.status_code == 201, created.text
        login = await test_client.post("/login", json={"username": username})
        assert login.status_code == 200, login.text
        return {"Authorization": f"Bearer {login.json()['access_token']}"}

    return _signup
