from __future__ import annotations

from csrportal.core.errors import ValidationError
from csrportal.domain.statuses import SUBSCRIPTION_STATUSES


# Allowed subscription status edges; cancelled is terminal.
SUBSCRIPTION_TRANSITIONS: dict[str, frozenset[str]] = {
    "active": frozenset({"paused", "cancelled", "overdue"}),
    "paused": frozenset({"active"}),
    "overdue": frozenset({"active", "cancelled"}),
    "cancelled": frozenset(),
}

# Named lifecycle actions exposed to CSR staff: action -> (from statuses, to status).
SUBSCRIPTION_ACTIONS: dict[str, tuple[frozenset[str], str]] = {
    "pause": (frozenset({"active"}), "paused"),
    "resume": (frozenset({"paused"}), "active"),
    "cancel": (frozenset({"active", "overdue"}), "cancelled"),
    "mark_overdue": (frozenset({"active"}), "overdue"),
    "recover": (frozenset({"overdue"}), "active"),
}


def can_transition(current: str, target: str) -> bool:
    return target in SUBSCRIPTION_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, target: str) -> None:
    # Reject unknown targets and any edge outside the transition table.
    if target not in SUBSCRIPTION_STATUSES:
        raise ValidationError(
            f"Invalid subscription status: {target}",
            field="status",
            allowed=list(SUBSCRIPTION_STATUSES),
        )
    if not can_transition(current, target):
        raise ValidationError(
            f"Illegal subscription transition {current} -> {target}",
            field="status",
            current=current,
            target=target,
        )


def target_for_action(action: str, current: str) -> str:
    # Resolve a named action against the current status.
    entry = SUBSCRIPTION_ACTIONS.get(action)
    if entry is None:
        raise ValidationError(
            f"Unknown subscription action: {action}",
            field="action",
            allowed=sorted(SUBSCRIPTION_ACTIONS),
        )
    sources, target = entry
    if current not in sources:
        raise ValidationError(
            f"Cannot {action.replace('_', ' ')} a {current} subscription",
            field="status",
            current=current,
            target=target,
        )
    return target
