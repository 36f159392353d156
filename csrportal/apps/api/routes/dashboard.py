from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.apps.api.deps import get_db, request_timeout_ms
from csrportal.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from csrportal.apps.api.response import ApiModel, SuccessEnvelope, success_response
from csrportal.services.metrics import get_dashboard_metrics
from csrportal.services.ui_dashboard import build_dashboard_alerts, build_metric_cards


router = APIRouter(prefix="/dashboard", tags=["dashboard"], responses=DEFAULT_ERROR_RESPONSES)


class Growth(ApiModel):
    value: int
    percentage: float
    trend: str


class DashboardMetrics(ApiModel):
    total_members: int
    active_members: int
    total_subscriptions: int
    active_subscriptions: int
    overdue_subscriptions: int
    monthly_revenue: float
    member_growth: Growth
    subscription_growth: Growth
    revenue_growth: Growth


class MetricCard(ApiModel):
    id: str
    title: str
    value: str
    trend: str | None = None


class DashboardAlert(ApiModel):
    id: str
    message: str
    severity: str


class DashboardSummary(ApiModel):
    metrics: DashboardMetrics
    cards: list[MetricCard]
    alerts: list[DashboardAlert]


@router.get("/metrics", response_model=SuccessEnvelope[DashboardMetrics])
async def dashboard_metrics(
    request: Request,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    metrics = await get_dashboard_metrics(db, timeout_ms=timeout_ms)
    return success_response(request=request, data=metrics)


@router.get("/summary", response_model=SuccessEnvelope[DashboardSummary])
async def dashboard_summary(
    request: Request,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    # Same snapshot as /metrics, pre-shaped into cards and alerts for the UI.
    metrics = await get_dashboard_metrics(db, timeout_ms=timeout_ms)
    payload = {
        "metrics": metrics,
        "cards": build_metric_cards(metrics),
        "alerts": build_dashboard_alerts(metrics),
    }
    return success_response(request=request, data=payload)
