from __future__ import annotations

from typing import Any

from csrportal.core.config import get_settings


def _format_trend(growth: dict[str, Any]) -> str | None:
    if growth.get("trend") == "stable":
        return None
    sign = "+" if growth.get("value", 0) > 0 else ""
    return f"{sign}{growth.get('percentage', 0)}%"


def build_metric_cards(metrics: dict[str, Any]) -> list[dict[str, Any]]:
    # Map the metrics snapshot into UI card descriptors for dashboard rendering.
    return [
        {
            "id": "members",
            "title": "Total members",
            "value": str(metrics["totalMembers"]),
            "trend": _format_trend(metrics["memberGrowth"]),
        },
        {
            "id": "active_subscriptions",
            "title": "Active subscriptions",
            "value": str(metrics["activeSubscriptions"]),
            "trend": _format_trend(metrics["subscriptionGrowth"]),
        },
        {
            "id": "monthly_revenue",
            "title": "Monthly revenue",
            "value": f"${metrics['monthlyRevenue']:,.2f}",
            "trend": _format_trend(metrics["revenueGrowth"]),
        },
        {
            "id": "overdue",
            "title": "Overdue subscriptions",
            "value": str(metrics["overdueSubscriptions"]),
            "trend": None,
        },
    ]


def build_dashboard_alerts(metrics: dict[str, Any]) -> list[dict[str, Any]]:
    # Normalize dashboard alerts for quick UI consumption.
    alerts: list[dict[str, Any]] = []
    overdue = int(metrics["overdueSubscriptions"])
    if overdue >= get_settings().overdue_alert_threshold:
        alerts.append(
            {
                "id": "overdue-subscriptions",
                "message": f"{overdue} subscription{'s' if overdue != 1 else ''} overdue",
                "severity": "warning",
            }
        )
    inactive = int(metrics["totalMembers"]) - int(metrics["activeMembers"])
    if inactive:
        alerts.append(
            {
                "id": "inactive-members",
                "message": f"{inactive} member{'s' if inactive != 1 else ''} suspended or cancelled",
                "severity": "info",
            }
        )
    return alerts
