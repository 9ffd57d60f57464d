"""Pytest configuration and shared fixtures for API and service tests."""

import os
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set config before app imports so settings and the module-level engine use it
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-0123")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("TOKEN_SWEEP_INTERVAL_MINUTES", "0")
os.environ.setdefault("GENERATION_FAILURE_RATE", "0")
os.environ.setdefault("GENERATION_MIN_DELAY_SECONDS", "0")
os.environ.setdefault("GENERATION_MAX_DELAY_SECONDS", "0")

from app.core.auth import PasswordHasher, get_password_hasher
from app.db.base import Base
from app.db.session import get_db
from app.main import app
from app.models.user import User

TEST_EMAIL = "test@example.com"
TEST_PASSWORD = "Password123"


@pytest.fixture
def hasher():
    """Cheap bcrypt cost so tests stay fast; the format is the same."""
    return PasswordHasher(rounds=4)


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    """Fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker, hasher):
    """AsyncClient with get_db pointed at the per-test database."""

    async def _get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_password_hasher] = lambda: hasher
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def test_user(session_maker, hasher):
    """Create a user via DB (committed) and return it."""
    async with session_maker() as session:
        user = User(
            email=TEST_EMAIL,
            name="Test User",
            role="user",
            password_hash=hasher.hash(TEST_PASSWORD),
        )
        session.add(user)
        await session.commit()
        await session.refresh(user)
        return user


class FakeClock:
    """Settable clock for TokenCodec."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta
