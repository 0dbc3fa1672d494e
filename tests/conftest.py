"""Shared fixtures: a throwaway SQLite database per test and an API client."""

import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./pytest.db")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("REFRESH_SECRET_KEY", "test-refresh-secret")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import httpx
import pytest_asyncio
from sqlalchemy.pool import NullPool

from freelancehub.core.database import Database
from freelancehub.core.security import get_password_hash
from freelancehub.main import create_app
from freelancehub.models import User, UserType

PASSWORD = "Secret123"


@pytest_asyncio.fixture
async def database(tmp_path):
    """A fresh file-backed database; separate connections can race on it."""
    db = Database(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def session(database):
    async with database.session() as s:
        yield s


@pytest_asyncio.fixture
async def client(database):
    app = create_app(database)
    # Unhandled errors should come back as 500 responses, not re-raise here
    transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest_asyncio.fixture
async def user(session) -> User:
    """A stored freelancer account without a profile."""
    account = User(
        email="dana@example.com",
        hashed_password=get_password_hash(PASSWORD, rounds=4),
        user_type=UserType.FREELANCER,
    )
    session.add(account)
    await session.commit()
    await session.refresh(account)
    return account


async def signup(client: httpx.AsyncClient, email: str = "alice@example.com", **extra) -> dict:
    """Sign up through the API and return the envelope's ``data``."""
    payload = {"email": email, "password": PASSWORD, **extra}
    res = await client.post("/api/auth/signup", json=payload)
    assert res.status_code == 201, res.text
    return res.json()["data"]


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}
