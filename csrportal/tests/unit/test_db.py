from __future__ import annotations

from csrportal.core.config import Settings
from csrportal.persistence.db import engine_options, pool_stats


def test_sqlite_keeps_default_pool() -> None:
    assert engine_options(Settings(database_url="sqlite+aiosqlite://")) == {}


def test_postgres_pool_is_bounded() -> None:
    options = engine_options(
        Settings(
            database_url="postgresql+asyncpg://u:p@db/csr",
            api_db_pool_size=0,
            api_db_max_overflow=-3,
            api_db_statement_timeout_ms=2500,
        )
    )
    assert options["pool_size"] == 1
    assert options["max_overflow"] == 0
    assert options["connect_args"] == {"server_settings": {"statement_timeout": "2500"}}


def test_statement_timeout_can_be_disabled() -> None:
    options = engine_options(
        Settings(database_url="postgresql+asyncpg://u:p@db/csr", api_db_statement_timeout_ms=0)
    )
    assert "connect_args" not in options


def test_pool_stats_reports_every_counter() -> None:
    stats = pool_stats()
    assert set(stats) == {"size", "checkedout", "checkedin", "overflow"}
    assert all(value is None or isinstance(value, int) for value in stats.values())
