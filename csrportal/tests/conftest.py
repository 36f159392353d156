from __future__ import annotations

import os

# The module-level engine is built at import time; point it at SQLite before any import.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from csrportal.apps.api.deps import get_db
from csrportal.apps.api.main import create_app
from csrportal.domain.models import Base
from csrportal.services import telemetry


@pytest.fixture
async def db_engine():
    # Fresh in-memory database per test; StaticPool keeps the single connection alive.
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    app = create_app()

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_telemetry() -> None:
    # Keep in-process counters isolated between tests.
    telemetry.reset()
    yield
    telemetry.reset()
