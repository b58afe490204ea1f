"""Pytest configuration and fixtures."""

import os

# Settings are read once and cached; set test secrets before any dimiplan import
os.environ.setdefault("MASTER_KEY", "k")
os.environ.setdefault("MASTER_IV_SEED", "i")
os.environ.setdefault("UID_SALT", "s")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id")
os.environ.setdefault("DATABASE_URL_OVERRIDE", "sqlite+aiosqlite:///:memory:")

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from dimiplan.api.deps import create_access_token
from dimiplan.crypto import RecordEnvelope, get_envelope
from dimiplan.db.base import Base
from dimiplan.db import models  # noqa: F401 - Import models to register them
from dimiplan.db.session import build_sessionmaker, get_db
from dimiplan.main import app
from dimiplan.services import Services, get_services


@pytest.fixture
def envelope() -> RecordEnvelope:
    """Envelope built from the test secrets (MASTER_KEY=k, MASTER_IV_SEED=i, UID_SALT=s)."""
    return get_envelope()


@pytest.fixture
def services() -> Services:
    return get_services()


@pytest.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """A fresh SQLite file per test so separate sessions see each other's commits."""
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'dimiplan.db'}",
        connect_args={"timeout": 30},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_sessionmaker(engine)


@pytest.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def user(db: AsyncSession, services: Services) -> str:
    """External id of a registered user."""
    await services.users.create_user(db, "u1", {"name": "Kim", "email": "kim@example.com"})
    await db.commit()
    return "u1"


@pytest.fixture
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints against the test database."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}
