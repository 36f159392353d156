from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from csrportal.core.config import Settings, get_settings


_POOL_COUNTERS = ("size", "checkedout", "checkedin", "overflow")


def engine_options(settings: Settings) -> dict[str, Any]:
    # SQLite (tests, local dev) keeps SQLAlchemy's default pool.
    if settings.database_url.startswith("sqlite"):
        return {}
    options: dict[str, Any] = {
        "pool_size": max(1, settings.api_db_pool_size),
        "max_overflow": max(0, settings.api_db_max_overflow),
    }
    if settings.api_db_statement_timeout_ms > 0:
        options["connect_args"] = {
            "server_settings": {"statement_timeout": str(settings.api_db_statement_timeout_ms)}
        }
    return options


settings = get_settings()
engine = create_async_engine(settings.database_url, **engine_options(settings))
SessionLocal = async_sessionmaker(engine, expire_on_commit=False)


@asynccontextmanager
async def get_session() -> AsyncIterator[AsyncSession]:
    async with SessionLocal() as session:
        yield session


def pool_stats() -> dict[str, int | None]:
    """Connection counters reported by ``/v1/health``.

    Pools that do not track a counter (SQLite's static pools) report None.
    """
    pool = engine.sync_engine.pool
    stats: dict[str, int | None] = {}
    for name in _POOL_COUNTERS:
        counter = getattr(pool, name, None)
        stats[name] = int(counter()) if callable(counter) else None
    return stats
