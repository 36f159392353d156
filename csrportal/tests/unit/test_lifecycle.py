from __future__ import annotations

import pytest

from csrportal.core.errors import ValidationError
from csrportal.services.lifecycle import (
    SUBSCRIPTION_TRANSITIONS,
    can_transition,
    ensure_transition,
    target_for_action,
)


def test_transition_table() -> None:
    assert can_transition("active", "paused")
    assert can_transition("active", "cancelled")
    assert can_transition("active", "overdue")
    assert can_transition("paused", "active")
    assert can_transition("overdue", "active")
    assert can_transition("overdue", "cancelled")
    assert not can_transition("paused", "cancelled")
    assert not can_transition("paused", "overdue")
    assert SUBSCRIPTION_TRANSITIONS["cancelled"] == frozenset()


@pytest.mark.parametrize("target", ["active", "paused", "overdue"])
def test_cancelled_is_terminal(target: str) -> None:
    with pytest.raises(ValidationError):
        ensure_transition("cancelled", target)


def test_unknown_status_is_rejected() -> None:
    with pytest.raises(ValidationError) as excinfo:
        ensure_transition("active", "archived")
    assert "allowed" in excinfo.value.details


def test_actions_resolve_against_current_status() -> None:
    assert target_for_action("pause", "active") == "paused"
    assert target_for_action("resume", "paused") == "active"
    assert target_for_action("cancel", "overdue") == "cancelled"
    assert target_for_action("mark_overdue", "active") == "overdue"
    assert target_for_action("recover", "overdue") == "active"
    with pytest.raises(ValidationError):
        target_for_action("resume", "active")
    with pytest.raises(ValidationError):
        target_for_action("refund", "active")
