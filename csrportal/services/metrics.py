from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.core.config import get_settings
from csrportal.persistence import mapping
from csrportal.persistence.guards import store_call
from csrportal.persistence.repos import members as members_repo
from csrportal.persistence.repos import subscriptions as subscriptions_repo
from csrportal.services.revenue import monthly_equivalent, round_currency


NEUTRAL_TREND: dict[str, Any] = {"value": 0, "percentage": 0.0, "trend": "stable"}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def growth_trend(total: int, existing_before: int) -> dict[str, Any]:
    """Relative change of ``total`` against what existed before the window.

    Without a baseline there is nothing to compare against, so the trend is
    neutral rather than an invented percentage.
    """
    if existing_before <= 0:
        return dict(NEUTRAL_TREND)
    added = total - existing_before
    if added == 0:
        return dict(NEUTRAL_TREND)
    return {
        "value": added,
        "percentage": round(added / existing_before * 100, 1),
        "trend": "up" if added > 0 else "down",
    }


def monthly_revenue(totals_by_cycle: dict[str, Decimal], *, normalize: bool | None = None) -> Decimal:
    total = Decimal("0")
    for cycle, amount in totals_by_cycle.items():
        total += monthly_equivalent(amount, cycle, normalize=normalize)
    return round_currency(total)


async def get_dashboard_metrics(
    session: AsyncSession, *, now: datetime | None = None, timeout_ms: int | None = None
) -> dict[str, Any]:
    # Each counter is its own exact query; no counter is derived from another.
    settings = get_settings()
    window_start = (now or _utc_now()) - timedelta(days=settings.metrics_growth_window_days)

    async def _run() -> dict[str, Any]:
        total_members = await members_repo.count_by_status(session)
        active_members = await members_repo.count_by_status(session, "active")
        total_subscriptions = await subscriptions_repo.count_by_status(session)
        active_subscriptions = await subscriptions_repo.count_by_status(session, "active")
        overdue_subscriptions = await subscriptions_repo.count_by_status(session, "overdue")
        revenue = monthly_revenue(await subscriptions_repo.active_amounts_by_cycle(session))
        members_before = await members_repo.count_created_before(session, window_start)
        subscriptions_before = await subscriptions_repo.count_created_before(
            session, window_start
        )
        return mapping.transform_keys(
            {
                "total_members": total_members,
                "active_members": active_members,
                "total_subscriptions": total_subscriptions,
                "active_subscriptions": active_subscriptions,
                "overdue_subscriptions": overdue_subscriptions,
                "monthly_revenue": revenue,
                "member_growth": growth_trend(total_members, members_before),
                "subscription_growth": growth_trend(total_subscriptions, subscriptions_before),
                # Revenue history is not stored, so there is no basis for a trend.
                "revenue_growth": dict(NEUTRAL_TREND),
            }
        )

    return await store_call("dashboard.metrics", _run, timeout_ms=timeout_ms)
