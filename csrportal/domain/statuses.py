from __future__ import annotations

from decimal import Decimal


MEMBER_STATUSES = ("active", "suspended", "cancelled")
SUBSCRIPTION_STATUSES = ("active", "paused", "overdue", "cancelled")
BILLING_CYCLES = ("monthly", "yearly")

TICKET_STATUSES = ("open", "in_progress", "resolved", "closed")
TICKET_PRIORITIES = ("high", "medium", "low")
TICKET_CATEGORIES = ("billing", "technical", "account", "general")

# Ticket list filters accept "all" as an explicit "no filter" value.
TICKET_FILTER_ALL = "all"

# Plan catalog offered by the edit and reactivation flows (monthly, yearly).
PLAN_CATALOG: dict[str, tuple[Decimal, Decimal]] = {
    "Basic Wash": (Decimal("19.99"), Decimal("199.99")),
    "Premium Wash": (Decimal("29.99"), Decimal("299.99")),
    "Deluxe Wash": (Decimal("39.99"), Decimal("399.99")),
    "Ultimate Wash": (Decimal("49.99"), Decimal("499.99")),
}

# Auto-assignment queues by ticket category when intake does not name an agent.
DEFAULT_ASSIGNEES = {
    "billing": "Billing Team",
    "technical": "Technical Support",
    "account": "Account Services",
    "general": "Support Desk",
}


def catalog_price(plan_name: str, billing_cycle: str) -> Decimal | None:
    prices = PLAN_CATALOG.get(plan_name)
    if prices is None:
        return None
    return prices[0] if billing_cycle == "monthly" else prices[1]
