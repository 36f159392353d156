from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.core.config import get_settings
from csrportal.core.errors import (
    ConstraintViolationError,
    CsrPortalError,
    StoreError,
    StoreTimeoutError,
)
from csrportal.services.telemetry import increment_counter, record_store_call


logger = logging.getLogger(__name__)

T = TypeVar("T")


def resolve_timeout_ms(timeout_ms: int | None) -> int:
    # Clamp caller overrides to the configured ceiling; fall back to the default.
    settings = get_settings()
    if timeout_ms is None or timeout_ms <= 0:
        return settings.store_call_timeout_ms
    return min(int(timeout_ms), settings.store_call_max_timeout_ms)


async def store_call(
    operation: str,
    func: Callable[[], Awaitable[T]],
    *,
    timeout_ms: int | None = None,
) -> T:
    """Run one unit of store work under a timeout and translate store failures.

    Domain errors raised inside ``func`` (validation, not found, integrity)
    pass through untouched. SQLAlchemy failures become :class:`StoreError`
    subclasses and expired calls are cancelled and reported as
    :class:`StoreTimeoutError`. Nothing is retried here.
    """
    budget_ms = resolve_timeout_ms(timeout_ms)
    start = time.monotonic()
    success = False
    try:
        result = await asyncio.wait_for(func(), timeout=budget_ms / 1000.0)
        success = True
        return result
    except CsrPortalError:
        raise
    except asyncio.TimeoutError as exc:
        increment_counter("store_timeouts_total")
        logger.warning("store_call_timeout operation=%s timeout_ms=%s", operation, budget_ms)
        raise StoreTimeoutError(
            "Store call timed out", operation=operation, timeout_ms=budget_ms
        ) from exc
    except IntegrityError as exc:
        increment_counter("store_constraint_errors_total")
        logger.warning("store_call_constraint operation=%s", operation, exc_info=exc)
        raise ConstraintViolationError(
            "Store rejected the write", operation=operation
        ) from exc
    except SQLAlchemyError as exc:
        increment_counter("store_errors_total")
        logger.error("store_call_failed operation=%s", operation, exc_info=exc)
        raise StoreError("Store unavailable", operation=operation) from exc
    finally:
        record_store_call(
            operation=operation,
            latency_ms=(time.monotonic() - start) * 1000.0,
            success=success,
        )


async def store_write(
    session: AsyncSession,
    operation: str,
    func: Callable[[], Awaitable[T]],
    *,
    timeout_ms: int | None = None,
) -> T:
    # Writes roll back on any failure so the request session is reusable.
    try:
        return await store_call(operation, func, timeout_ms=timeout_ms)
    except Exception:
        await session.rollback()
        raise
