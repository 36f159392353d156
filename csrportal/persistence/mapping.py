"""Translate between store rows (snake_case columns) and API payloads (camelCase).

Every other module goes through these helpers so the naming convention of the
store never leaks past the persistence boundary.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import inspect


_SNAKE_SEGMENT = re.compile(r"_([a-z0-9])")
_CAMEL_HUMP = re.compile(r"(?<=[a-z0-9])([A-Z])")


def to_camel(name: str) -> str:
    # license_plate -> licensePlate
    return _SNAKE_SEGMENT.sub(lambda match: match.group(1).upper(), name)


def to_snake(name: str) -> str:
    # licensePlate -> license_plate
    return _CAMEL_HUMP.sub(lambda match: "_" + match.group(1).lower(), name)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is written in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def serialize_value(value: Any) -> Any:
    # Store values become JSON-friendly.
    if isinstance(value, datetime):
        return as_utc(value).isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    return value


def transform_keys(payload: Any) -> Any:
    """Recursively rename dict keys from snake_case to camelCase.

    Lists are mapped element-wise; scalars are serialized with
    :func:`serialize_value`.
    """
    if isinstance(payload, dict):
        return {to_camel(str(key)): transform_keys(value) for key, value in payload.items()}
    if isinstance(payload, (list, tuple)):
        return [transform_keys(item) for item in payload]
    return serialize_value(payload)


def to_store_fields(updates: dict[str, Any]) -> dict[str, Any]:
    # Inverse direction for partial updates arriving from the API.
    return {to_snake(key): value for key, value in updates.items()}


def row_to_dict(row: Any, *, exclude: tuple[str, ...] = ()) -> dict[str, Any]:
    # Column attributes only; relationships are never implied by the mapper.
    mapper = inspect(row).mapper
    return {
        column.key: getattr(row, column.key)
        for column in mapper.column_attrs
        if column.key not in exclude
    }


def row_to_payload(row: Any, *, exclude: tuple[str, ...] = ()) -> dict[str, Any]:
    return transform_keys(row_to_dict(row, exclude=exclude))


def member_summary(member: Any) -> dict[str, Any]:
    # Snapshot embedded on subscription rows.
    return transform_keys(
        {
            "id": member.id,
            "name": member.name,
            "email": member.email,
            "phone": member.phone,
            "status": member.status,
        }
    )
