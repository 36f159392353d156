from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from csrportal.core.errors import ValidationError


_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^\(\d{3}\) \d{3}-\d{4}$")


def require_text(value: Any, *, field: str) -> str:
    # Strings are trimmed; blank or non-string input is rejected.
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    return value.strip()


def validate_email(value: Any) -> str:
    email = require_text(value, field="email")
    if not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email address", field="email")
    return email


def validate_phone(value: Any) -> str | None:
    # Phone is optional; null (or blank) clears it.
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if not isinstance(value, str) or not _PHONE_RE.match(value.strip()):
        raise ValidationError("Phone must look like (555) 123-4567", field="phone")
    return value.strip()


def validate_choice(value: Any, choices: Iterable[str], *, field: str) -> str:
    allowed = list(choices)
    if value not in allowed:
        raise ValidationError(f"Invalid {field}: {value}", field=field, allowed=allowed)
    return str(value)


def validate_amount(value: Any) -> Decimal:
    # Money is exact; floats are routed through str to avoid binary noise.
    if isinstance(value, bool) or value is None:
        raise ValidationError("amount must be a number", field="amount")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError("amount must be a number", field="amount") from exc
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("amount must be positive", field="amount")
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def reject_unknown_fields(updates: dict[str, Any], allowed: Iterable[str]) -> None:
    allowed_set = set(allowed)
    unknown = sorted(key for key in updates if key not in allowed_set)
    if unknown:
        raise ValidationError(
            "Unsupported update fields", field=unknown[0], allowed=sorted(allowed_set)
        )
