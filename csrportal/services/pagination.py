from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy.sql import ColumnElement

from csrportal.core.config import get_settings
from csrportal.core.errors import ValidationError


@dataclass(frozen=True)
class SortSpec:
    # Sortable column exposed under an API field name.
    column: ColumnElement[Any]


@dataclass(frozen=True)
class SortField:
    # Capture the parsed sort direction for a single field.
    name: str
    spec: SortSpec
    direction: str


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_request(page: int | None, limit: int | None) -> PageRequest:
    # Reject out-of-range pagination instead of clamping it silently.
    settings = get_settings()
    page = 1 if page is None else page
    limit = settings.default_page_size if limit is None else limit
    if page < 1:
        raise ValidationError("page must be >= 1", field="page")
    if limit < 1 or limit > settings.max_page_size:
        raise ValidationError(
            f"limit must be between 1 and {settings.max_page_size}",
            field="limit",
        )
    return PageRequest(page=page, limit=limit)


def parse_sort(
    *,
    sort: str | None,
    allowed: dict[str, SortSpec],
    default: list[SortField],
) -> list[SortField]:
    # Parse comma-delimited sort strings into validated field specs.
    if not sort:
        return default
    fields: list[SortField] = []
    seen = set()
    for raw in sort.split(","):
        raw = raw.strip()
        if not raw:
            continue
        direction = "desc" if raw.startswith("-") else "asc"
        name = raw[1:] if raw.startswith("-") else raw
        if name in seen:
            continue
        spec = allowed.get(name)
        if spec is None:
            raise ValidationError(
                f"Unsupported sort field: {name}", field="sort", allowed=sorted(allowed)
            )
        fields.append(SortField(name=name, spec=spec, direction=direction))
        seen.add(name)
    if not fields:
        return default
    return fields


def order_by_clauses(
    sort_fields: list[SortField], id_column: ColumnElement[Any]
) -> list[ColumnElement[Any]]:
    # The primary key always breaks ties so page boundaries never shift.
    clauses: list[ColumnElement[Any]] = []
    for field in sort_fields:
        column = field.spec.column
        clauses.append(column.desc() if field.direction == "desc" else column.asc())
    clauses.append(id_column.asc())
    return clauses


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0


def build_page(
    *, data: list[dict[str, Any]], total: int, request: PageRequest
) -> dict[str, Any]:
    return {
        "data": data,
        "total": total,
        "page": request.page,
        "limit": request.limit,
        "totalPages": total_pages(total, request.limit),
    }
