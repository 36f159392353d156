from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from csrportal.core.config import get_settings


_CENT = Decimal("0.01")
_MONTHS_PER_YEAR = Decimal(12)


def round_currency(value: Decimal) -> Decimal:
    return value.quantize(_CENT, rounding=ROUND_HALF_UP)


def monthly_equivalent(amount: Decimal, billing_cycle: str, *, normalize: bool | None = None) -> Decimal:
    # Yearly plans contribute a twelfth of their amount when normalization is on.
    if normalize is None:
        normalize = get_settings().revenue_normalize_yearly
    amount = Decimal(str(amount))
    if normalize and billing_cycle == "yearly":
        return amount / _MONTHS_PER_YEAR
    return amount


@dataclass(frozen=True)
class MemberRollup:
    # Derived member fields; computed on read from subscription rows, never stored.
    total_subscriptions: int = 0
    monthly_revenue: Decimal = Decimal("0.00")
    is_overdue: bool = False


def summarize_member_billing(
    rows: Iterable[tuple[str, str, Decimal, str]],
) -> dict[str, MemberRollup]:
    """Fold (member_id, status, amount, billing_cycle) rows into per-member rollups.

    ``total_subscriptions`` counts non-cancelled subscriptions,
    ``monthly_revenue`` sums active subscriptions at their monthly
    equivalent and ``is_overdue`` is set when any subscription is overdue.
    """
    normalize = get_settings().revenue_normalize_yearly
    counts: dict[str, int] = {}
    revenue: dict[str, Decimal] = {}
    overdue: dict[str, bool] = {}
    for member_id, status, amount, billing_cycle in rows:
        counts.setdefault(member_id, 0)
        revenue.setdefault(member_id, Decimal("0"))
        overdue.setdefault(member_id, False)
        if status != "cancelled":
            counts[member_id] += 1
        if status == "active":
            revenue[member_id] += monthly_equivalent(amount, billing_cycle, normalize=normalize)
        if status == "overdue":
            overdue[member_id] = True
    return {
        member_id: MemberRollup(
            total_subscriptions=counts[member_id],
            monthly_revenue=round_currency(revenue[member_id]),
            is_overdue=overdue[member_id],
        )
        for member_id in counts
    }
