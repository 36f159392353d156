from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.apps.api.deps import get_db
from csrportal.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from csrportal.apps.api.response import SuccessEnvelope, success_response
from csrportal.persistence.db import pool_stats
from csrportal.persistence.guards import store_call
from csrportal.services.telemetry import (
    counters_snapshot,
    request_latency_summary,
    store_latency_by_operation,
)

router = APIRouter(tags=["health"], responses=DEFAULT_ERROR_RESPONSES)


class HealthResponse(BaseModel):
    status: str
    database: str
    requests: dict[str, Any]
    store: dict[str, dict[str, Any]]
    counters: dict[str, int]
    pool: dict[str, int | None]


@router.get("/health", response_model=SuccessEnvelope[HealthResponse])
async def health(request: Request, db: AsyncSession = Depends(get_db)) -> dict:
    # Store reachability plus the last five minutes of request telemetry.

    async def _ping() -> None:
        await db.execute(text("SELECT 1"))

    await store_call("health.ping", _ping)
    payload = HealthResponse(
        status="ok",
        database="ok",
        requests=request_latency_summary(300),
        store=store_latency_by_operation(300),
        counters=counters_snapshot(),
        pool=pool_stats(),
    )
    return success_response(request=request, data=payload)
