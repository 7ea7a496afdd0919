"""Pytest configuration and fixtures for service and API tests."""
import os

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["INITIAL_ADMIN_PASSWORD"] = "testpass123"
os.environ["INITIAL_ADMIN_USERNAME"] = "admin"
os.environ["LOCALE"] = "en"

from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from tourney.models import Base, Tournament, User
from tourney.models.base import async_session_factory, engine, utcnow
from web.api.main import app
from web.auth import hash_password, seed_initial_admin


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
async def _init_db():
    """Fresh tables and the seeded admin before each test (ASGI lifespan doesn't run with httpx)."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    await seed_initial_admin()
    yield


@pytest.fixture
async def session():
    async with async_session_factory() as s:
        yield s


@pytest.fixture
async def client():
    """Async HTTP client for testing the API."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


async def _login(client, username, password):
    r = await client.post("/api/auth/login", json={"username": username, "password": password})
    assert r.status_code == 200, f"Login failed: {r.text}"
    token = r.json()["data"]["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def auth_headers(client):
    """Login as admin and return Authorization headers for protected endpoints."""
    return await _login(client, "admin", "testpass123")


@pytest.fixture
def make_member(client):
    """Sign up a member account and return its Authorization headers."""

    async def _make(username: str, password: str = "secret123"):
        r = await client.post("/api/auth/register", json={"username": username, "password": password})
        assert r.status_code == 201, r.text
        return {"Authorization": f"Bearer {r.json()['data']['access_token']}"}

    return _make


@pytest.fixture
def make_user(session):
    """Insert a user directly and return it."""

    async def _make(username: str, role: str = "member"):
        user = User(username=username, password_hash=hash_password("secret123"), role=role)
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user

    return _make


@pytest.fixture
def make_tournament(session):
    """Insert a tournament directly (no API, no validation) and return it."""

    async def _make(**overrides):
        values = {
            "name": "Friday Cup",
            "game": "Smash Bros",
            "date": (utcnow() + timedelta(days=7)).replace(tzinfo=None),
            "max_players": 2,
            "current_players": 0,
            "status": "registration_open",
        }
        values.update(overrides)
        t = Tournament(**values)
        session.add(t)
        await session.commit()
        await session.refresh(t)
        return t

    return _make
