from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Header
from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.persistence.db import get_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    # One AsyncSession per request; context manager ensures close on success/error.
    async with get_session() as session:
        yield session


def request_timeout_ms(
    x_timeout_ms: int | None = Header(default=None, alias="X-Timeout-Ms", ge=1),
) -> int | None:
    # Callers may shorten (never extend past the configured ceiling) the store budget.
    return x_timeout_ms
