"""
Shared fixtures: in-memory SQLite for fast tests.
"""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from app.core.config import Settings
from app.core.database import Database
from app.main import create_app
from app.models.user import User

ADMIN_KEY = "test-admin-key"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        admin_api_key=ADMIN_KEY,
        secret_key_salt="test-salt",
        log_json=False,
        log_level="WARNING",
    )


@pytest.fixture
async def db(settings):
    database = Database.from_settings(settings)
    await database.create_all()
    yield database
    await database.dispose()


@pytest.fixture
async def client(settings, db):
    app = create_app(settings=settings, database=db)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def admin_headers():
    return {"X-API-Key": ADMIN_KEY}


@pytest.fixture
def make_user(db):
    """Insert a user row directly and return it."""
    counter = {"n": 0}

    async def _make(name: str = None, email: str = None) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(name=name or f"User {n}", email=email or f"user{n}@example.com")

        async def _insert(session):
            session.add(user)
            await session.flush()
            return user

        return await db.transaction(_insert)

    return _make
