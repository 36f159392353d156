from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.core.errors import DataIntegrityError, NotFoundError, ValidationError
from csrportal.domain.models import Member
from csrportal.domain.statuses import MEMBER_STATUSES
from csrportal.persistence import mapping
from csrportal.persistence.guards import store_call, store_write
from csrportal.persistence.repos import members as members_repo
from csrportal.persistence.repos import subscriptions as subscriptions_repo
from csrportal.persistence.repos import vehicles as vehicles_repo
from csrportal.services.filters import MemberFilters
from csrportal.services.pagination import (
    SortField,
    SortSpec,
    build_page,
    order_by_clauses,
    page_request,
    parse_sort,
)
from csrportal.services.revenue import MemberRollup, summarize_member_billing
from csrportal.services.validators import (
    reject_unknown_fields,
    require_text,
    validate_choice,
    validate_email,
    validate_phone,
)


logger = logging.getLogger(__name__)

MEMBER_SORTS: dict[str, SortSpec] = {
    "createdAt": SortSpec(Member.created_at),
    "name": SortSpec(Member.name),
    "lastActivity": SortSpec(Member.last_activity),
}
DEFAULT_MEMBER_SORT = [SortField(name="createdAt", spec=MEMBER_SORTS["createdAt"], direction="asc")]

MEMBER_UPDATE_FIELDS = ("name", "email", "phone", "status")

MIN_VEHICLE_YEAR = 1990


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def member_payload(member: Member, rollup: MemberRollup | None = None) -> dict[str, Any]:
    # Stored columns plus the derived fields computed on read.
    rollup = rollup or MemberRollup()
    payload = mapping.row_to_payload(member)
    payload.update(
        mapping.transform_keys(
            {
                "total_subscriptions": rollup.total_subscriptions,
                "monthly_revenue": rollup.monthly_revenue,
                "is_overdue": rollup.is_overdue,
            }
        )
    )
    return payload


async def _rollups(session: AsyncSession, member_ids: list[str]) -> dict[str, MemberRollup]:
    rows = await subscriptions_repo.billing_rows_for_members(session, member_ids)
    return summarize_member_billing(rows)


async def _require_member(
    session: AsyncSession, member_id: str, *, for_update: bool = False
) -> Member:
    member = await members_repo.get_member(session, member_id, for_update=for_update)
    if member is None:
        raise NotFoundError("member", member_id)
    return member


async def list_members(
    session: AsyncSession,
    filters: MemberFilters,
    *,
    page: int | None = None,
    limit: int | None = None,
    sort: str | None = None,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    # Validate paging and sort before touching the store.
    request = page_request(page, limit)
    sort_fields = parse_sort(sort=sort, allowed=MEMBER_SORTS, default=DEFAULT_MEMBER_SORT)

    async def _run() -> dict[str, Any]:
        total = await members_repo.count_members(session, filters)
        rows = await members_repo.list_members(
            session,
            filters,
            order_by=order_by_clauses(sort_fields, Member.id),
            offset=request.offset,
            limit=request.limit,
        )
        rollups = await _rollups(session, [row.id for row in rows])
        data = [member_payload(row, rollups.get(row.id)) for row in rows]
        return build_page(data=data, total=total, request=request)

    return await store_call("members.list", _run, timeout_ms=timeout_ms)


async def get_member_by_id(
    session: AsyncSession, member_id: str, *, timeout_ms: int | None = None
) -> dict[str, Any]:
    """Return one member with subscriptions, owned vehicles and derived fields."""

    async def _run() -> dict[str, Any]:
        member = await _require_member(session, member_id)
        rollups = await _rollups(session, [member.id])
        subscriptions = []
        for subscription, vehicle in await subscriptions_repo.list_for_member(session, member.id):
            if vehicle is None:
                raise DataIntegrityError(
                    "Subscription references a missing vehicle",
                    subscription_id=subscription.id,
                    vehicle_id=subscription.vehicle_id,
                )
            item = mapping.row_to_payload(subscription)
            item["vehicle"] = mapping.row_to_payload(vehicle)
            subscriptions.append(item)
        vehicles = await vehicles_repo.list_for_member(session, member.id)
        payload = member_payload(member, rollups.get(member.id))
        payload["subscriptions"] = subscriptions
        payload["vehicles"] = [mapping.row_to_payload(vehicle) for vehicle in vehicles]
        # Activity history is not recorded yet.
        payload["recentActivity"] = []
        return payload

    return await store_call("members.get", _run, timeout_ms=timeout_ms)


def _clean_member_updates(updates: dict[str, Any]) -> dict[str, Any]:
    reject_unknown_fields(updates, MEMBER_UPDATE_FIELDS)
    cleaned: dict[str, Any] = {}
    if "name" in updates:
        cleaned["name"] = require_text(updates["name"], field="name")
    if "email" in updates:
        cleaned["email"] = validate_email(updates["email"])
    if "phone" in updates:
        cleaned["phone"] = validate_phone(updates["phone"])
    if "status" in updates:
        cleaned["status"] = validate_choice(updates["status"], MEMBER_STATUSES, field="status")
    return cleaned


async def update_member(
    session: AsyncSession,
    member_id: str,
    updates: dict[str, Any],
    *,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    """Apply a partial member update.

    Only the supplied fields change; ``updatedAt`` is refreshed. Subscriptions
    are left untouched, including when the status changes (see
    :func:`suspend_member` for the cascading path).
    """
    cleaned = _clean_member_updates(mapping.to_store_fields(updates))

    async def _run() -> dict[str, Any]:
        member = await _require_member(session, member_id, for_update=True)
        if "email" in cleaned and await members_repo.email_taken(
            session, cleaned["email"], exclude_id=member.id
        ):
            raise ValidationError("Email is already in use", field="email")
        for key, value in cleaned.items():
            setattr(member, key, value)
        member.updated_at = _utc_now()
        await session.commit()
        rollups = await _rollups(session, [member.id])
        logger.info("member_updated member_id=%s fields=%s", member.id, ",".join(sorted(cleaned)))
        return member_payload(member, rollups.get(member.id))

    return await store_write(session, "members.update", _run, timeout_ms=timeout_ms)


async def suspend_member(
    session: AsyncSession,
    member_id: str,
    *,
    pause_subscriptions: bool = False,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    # Suspension plus, on request, pausing every active subscription in one transaction.

    async def _run() -> dict[str, Any]:
        member = await _require_member(session, member_id, for_update=True)
        if member.status == "cancelled":
            raise ValidationError(
                "Cancelled members cannot be suspended", field="status", current=member.status
            )
        now = _utc_now()
        member.status = "suspended"
        member.updated_at = now
        paused = 0
        if pause_subscriptions:
            paused = await subscriptions_repo.pause_active_for_member(session, member.id, now=now)
        await session.commit()
        rollups = await _rollups(session, [member.id])
        logger.info("member_suspended member_id=%s paused_subscriptions=%s", member.id, paused)
        payload = member_payload(member, rollups.get(member.id))
        payload["pausedSubscriptions"] = paused
        return payload

    return await store_write(session, "members.suspend", _run, timeout_ms=timeout_ms)


async def list_vehicles_for_member(
    session: AsyncSession, member_id: str, *, timeout_ms: int | None = None
) -> list[dict[str, Any]]:
    async def _run() -> list[dict[str, Any]]:
        await _require_member(session, member_id)
        vehicles = await vehicles_repo.list_for_member(session, member_id)
        return [mapping.row_to_payload(vehicle) for vehicle in vehicles]

    return await store_call("vehicles.list", _run, timeout_ms=timeout_ms)


def _validate_year(value: Any) -> int:
    latest = _utc_now().year + 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("year must be an integer", field="year")
    if value < MIN_VEHICLE_YEAR or value > latest:
        raise ValidationError(
            f"year must be between {MIN_VEHICLE_YEAR} and {latest}", field="year"
        )
    return value


async def add_vehicle(
    session: AsyncSession,
    member_id: str,
    *,
    make: str,
    model: str,
    year: int,
    license_plate: str,
    color: str | None = None,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    fields = {
        "make": require_text(make, field="make"),
        "model": require_text(model, field="model"),
        "year": _validate_year(year),
        "license_plate": require_text(license_plate, field="licensePlate").upper(),
        "color": color.strip() if isinstance(color, str) and color.strip() else None,
    }

    async def _run() -> dict[str, Any]:
        member = await _require_member(session, member_id, for_update=True)
        vehicle_id = f"veh_{uuid.uuid4().hex[:12]}"
        vehicle = await vehicles_repo.create_vehicle(
            session,
            vehicle_id=vehicle_id,
            member_id=member.id,
            created_at=_utc_now(),
            **fields,
        )
        await session.commit()
        logger.info("vehicle_added member_id=%s vehicle_id=%s", member.id, vehicle_id)
        return mapping.row_to_payload(vehicle)

    return await store_write(session, "vehicles.add", _run, timeout_ms=timeout_ms)
