from __future__ import annotations

import calendar
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.core.errors import DataIntegrityError, NotFoundError, ValidationError
from csrportal.domain.models import Member, Subscription, Vehicle
from csrportal.domain.statuses import BILLING_CYCLES, catalog_price
from csrportal.persistence import mapping
from csrportal.persistence.guards import store_call, store_write
from csrportal.persistence.repos import members as members_repo
from csrportal.persistence.repos import subscriptions as subscriptions_repo
from csrportal.persistence.repos import vehicles as vehicles_repo
from csrportal.services.filters import SubscriptionFilters
from csrportal.services.lifecycle import ensure_transition, target_for_action
from csrportal.services.pagination import (
    SortField,
    SortSpec,
    build_page,
    order_by_clauses,
    page_request,
    parse_sort,
)
from csrportal.services.validators import (
    reject_unknown_fields,
    require_text,
    validate_amount,
    validate_choice,
)


logger = logging.getLogger(__name__)

SUBSCRIPTION_SORTS: dict[str, SortSpec] = {
    "createdAt": SortSpec(Subscription.created_at),
    "nextBillingDate": SortSpec(Subscription.next_billing_date),
    "amount": SortSpec(Subscription.amount),
    "planName": SortSpec(Subscription.plan_name),
}
DEFAULT_SUBSCRIPTION_SORT = [
    SortField(name="createdAt", spec=SUBSCRIPTION_SORTS["createdAt"], direction="asc")
]

SUBSCRIPTION_UPDATE_FIELDS = ("plan_name", "amount", "status", "billing_cycle", "next_billing_date")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def add_billing_cycle(value: datetime, billing_cycle: str) -> datetime:
    # Calendar arithmetic; the day is clamped to the length of the target month.
    months = 12 if billing_cycle == "yearly" else 1
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def subscription_payload(
    subscription: Subscription, member: Member | None, vehicle: Vehicle | None
) -> dict[str, Any]:
    # Dangling member or vehicle references are surfaced, never dropped.
    if member is None:
        raise DataIntegrityError(
            "Subscription references a missing member",
            subscription_id=subscription.id,
            member_id=subscription.member_id,
        )
    if vehicle is None:
        raise DataIntegrityError(
            "Subscription references a missing vehicle",
            subscription_id=subscription.id,
            vehicle_id=subscription.vehicle_id,
        )
    payload = mapping.row_to_payload(subscription)
    payload["member"] = mapping.member_summary(member)
    payload["vehicle"] = mapping.row_to_payload(vehicle)
    return payload


async def _joined_payload(session: AsyncSession, subscription_id: str) -> dict[str, Any]:
    joined = await subscriptions_repo.get_joined(session, subscription_id)
    if joined is None:
        raise NotFoundError("subscription", subscription_id)
    return subscription_payload(*joined)


async def _require_subscription(
    session: AsyncSession, subscription_id: str, *, for_update: bool = False
) -> Subscription:
    subscription = await subscriptions_repo.get_subscription(
        session, subscription_id, for_update=for_update
    )
    if subscription is None:
        raise NotFoundError("subscription", subscription_id)
    return subscription


async def list_subscriptions(
    session: AsyncSession,
    filters: SubscriptionFilters,
    *,
    page: int | None = None,
    limit: int | None = None,
    sort: str | None = None,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    request = page_request(page, limit)
    sort_fields = parse_sort(
        sort=sort, allowed=SUBSCRIPTION_SORTS, default=DEFAULT_SUBSCRIPTION_SORT
    )

    async def _run() -> dict[str, Any]:
        total = await subscriptions_repo.count_subscriptions(session, filters)
        rows = await subscriptions_repo.list_subscriptions(
            session,
            filters,
            order_by=order_by_clauses(sort_fields, Subscription.id),
            offset=request.offset,
            limit=request.limit,
        )
        data = [subscription_payload(*row) for row in rows]
        return build_page(data=data, total=total, request=request)

    return await store_call("subscriptions.list", _run, timeout_ms=timeout_ms)


async def get_subscription_by_id(
    session: AsyncSession, subscription_id: str, *, timeout_ms: int | None = None
) -> dict[str, Any]:
    async def _run() -> dict[str, Any]:
        return await _joined_payload(session, subscription_id)

    return await store_call("subscriptions.get", _run, timeout_ms=timeout_ms)


def _parse_billing_date(value: Any) -> datetime:
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as exc:
            raise ValidationError(
                "nextBillingDate must be an ISO-8601 datetime", field="nextBillingDate"
            ) from exc
    if not isinstance(value, datetime):
        raise ValidationError("nextBillingDate must be a datetime", field="nextBillingDate")
    value = mapping.as_utc(value)
    if value.date() < _utc_now().date():
        raise ValidationError("nextBillingDate cannot be in the past", field="nextBillingDate")
    return value


def _clean_subscription_updates(updates: dict[str, Any]) -> dict[str, Any]:
    reject_unknown_fields(updates, SUBSCRIPTION_UPDATE_FIELDS)
    cleaned: dict[str, Any] = {}
    if "plan_name" in updates:
        cleaned["plan_name"] = require_text(updates["plan_name"], field="planName")
    if "amount" in updates:
        cleaned["amount"] = validate_amount(updates["amount"])
    if "billing_cycle" in updates:
        cleaned["billing_cycle"] = validate_choice(
            updates["billing_cycle"], BILLING_CYCLES, field="billingCycle"
        )
    if "next_billing_date" in updates:
        cleaned["next_billing_date"] = _parse_billing_date(updates["next_billing_date"])
    if "status" in updates:
        cleaned["status"] = updates["status"]
    return cleaned


def _apply_status(subscription: Subscription, target: str, now: datetime) -> bool:
    """Move ``subscription`` to ``target`` along the lifecycle table.

    A subscription only turns overdue once its billing date has passed.
    Leaving overdue for active moves the billing date forward by whole
    cycles until it lies after ``now``.

    Returns False for a same-status update, which is a no-op.
    """
    if target == subscription.status:
        return False
    ensure_transition(subscription.status, target)
    previous = subscription.status
    next_date = mapping.as_utc(subscription.next_billing_date)
    if target == "overdue" and next_date >= now:
        raise ValidationError(
            "Billing date has not passed yet",
            field="nextBillingDate",
            next_billing_date=next_date.isoformat(),
        )
    if previous == "overdue" and target == "active":
        while next_date <= now:
            next_date = add_billing_cycle(next_date, subscription.billing_cycle)
        subscription.next_billing_date = next_date
    subscription.status = target
    if target == "cancelled":
        subscription.end_date = now
    logger.info(
        "subscription_transition subscription_id=%s from=%s to=%s",
        subscription.id,
        previous,
        target,
    )
    return True


async def update_subscription(
    session: AsyncSession,
    subscription_id: str,
    updates: dict[str, Any],
    *,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    """Apply a partial subscription update.

    Status changes must follow the lifecycle table; cancelling stamps
    ``endDate``. When the plan or billing cycle changes without an explicit
    amount, the amount follows the plan catalog (plans outside the catalog
    keep their current amount).
    """
    cleaned = _clean_subscription_updates(mapping.to_store_fields(updates))

    async def _run() -> dict[str, Any]:
        subscription = await _require_subscription(session, subscription_id, for_update=True)
        now = _utc_now()
        if "status" in cleaned:
            _apply_status(subscription, cleaned["status"], now)
        repriced = "amount" not in cleaned and (
            cleaned.get("plan_name", subscription.plan_name) != subscription.plan_name
            or cleaned.get("billing_cycle", subscription.billing_cycle)
            != subscription.billing_cycle
        )
        for key in ("plan_name", "amount", "billing_cycle", "next_billing_date"):
            if key in cleaned:
                setattr(subscription, key, cleaned[key])
        if repriced:
            price = catalog_price(subscription.plan_name, subscription.billing_cycle)
            if price is not None:
                subscription.amount = price
        subscription.updated_at = now
        await session.commit()
        return await _joined_payload(session, subscription.id)

    return await store_write(session, "subscriptions.update", _run, timeout_ms=timeout_ms)


async def apply_action(
    session: AsyncSession,
    subscription_id: str,
    action: str,
    *,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    """Run one named lifecycle action (pause, resume, cancel, mark_overdue, recover)."""

    async def _run() -> dict[str, Any]:
        subscription = await _require_subscription(session, subscription_id, for_update=True)
        target = target_for_action(action, subscription.status)
        now = _utc_now()
        _apply_status(subscription, target, now)
        subscription.updated_at = now
        await session.commit()
        return await _joined_payload(session, subscription.id)

    return await store_write(session, f"subscriptions.{action}", _run, timeout_ms=timeout_ms)


async def reactivate_subscription(
    session: AsyncSession, subscription_id: str, *, timeout_ms: int | None = None
) -> dict[str, Any]:
    # Cancelled stays terminal: reactivation opens a fresh subscription.

    async def _run() -> dict[str, Any]:
        previous = await _require_subscription(session, subscription_id, for_update=True)
        if previous.status != "cancelled":
            raise ValidationError(
                "Only cancelled subscriptions can be reactivated",
                field="status",
                current=previous.status,
            )
        member = await members_repo.get_member(session, previous.member_id, for_update=True)
        vehicle = await vehicles_repo.get_vehicle(session, previous.vehicle_id, for_update=True)
        if member is None or vehicle is None:
            raise DataIntegrityError(
                "Subscription references a missing member or vehicle",
                subscription_id=previous.id,
            )
        if member.status == "cancelled":
            raise ValidationError(
                "Cancelled members cannot be reactivated", field="memberId", member_id=member.id
            )
        if vehicle.member_id != member.id:
            raise ValidationError(
                "Vehicle no longer belongs to the member", field="vehicleId", vehicle_id=vehicle.id
            )
        if await subscriptions_repo.count_live_for_vehicle(session, vehicle.id):
            raise ValidationError(
                "Vehicle already has a live subscription", field="vehicleId", vehicle_id=vehicle.id
            )
        now = _utc_now()
        new_id = f"sub_{uuid.uuid4().hex[:12]}"
        await subscriptions_repo.create_subscription(
            session,
            subscription_id=new_id,
            member_id=member.id,
            vehicle_id=vehicle.id,
            plan_name=previous.plan_name,
            amount=previous.amount,
            status="active",
            billing_cycle=previous.billing_cycle,
            next_billing_date=add_billing_cycle(now, previous.billing_cycle),
            start_date=now,
            created_at=now,
        )
        await session.commit()
        logger.info(
            "subscription_reactivated previous_id=%s subscription_id=%s", previous.id, new_id
        )
        return await _joined_payload(session, new_id)

    return await store_write(session, "subscriptions.reactivate", _run, timeout_ms=timeout_ms)


async def transfer_subscription(
    session: AsyncSession,
    subscription_id: str,
    *,
    to_member_id: str | None = None,
    to_vehicle_id: str | None = None,
    reason: str | None = None,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    """Move a subscription to another vehicle, another member, or both.

    * vehicle only: the vehicle must belong to the subscription's member;
    * member and vehicle: the vehicle must belong to the target member;
    * member only: the vehicle is handed over with the subscription, which is
      refused while any other subscription, cancelled ones included,
      references the vehicle.

    Every touched row is locked and rewritten in a single transaction, so
    either all references change or none do.
    """
    if not to_member_id and not to_vehicle_id:
        raise ValidationError(
            "Transfer needs a target member or vehicle", field="toMemberId"
        )
    reason = require_text(reason, field="reason")

    async def _run() -> dict[str, Any]:
        subscription = await _require_subscription(session, subscription_id, for_update=True)
        if subscription.status == "cancelled":
            raise ValidationError(
                "Cancelled subscriptions cannot be transferred",
                field="status",
                current=subscription.status,
            )
        source_member_id = subscription.member_id
        target_member_id = source_member_id
        if to_member_id:
            target_member = await members_repo.get_member(session, to_member_id, for_update=True)
            if target_member is None:
                raise NotFoundError("member", to_member_id)
            if target_member.status == "cancelled":
                raise ValidationError(
                    "Cannot transfer to a cancelled member", field="toMemberId"
                )
            target_member_id = target_member.id

        if to_vehicle_id:
            vehicle = await vehicles_repo.get_vehicle(session, to_vehicle_id, for_update=True)
            if vehicle is None:
                raise NotFoundError("vehicle", to_vehicle_id)
            if vehicle.member_id != target_member_id:
                raise ValidationError(
                    "Target vehicle must belong to the receiving member",
                    field="toVehicleId",
                    vehicle_id=vehicle.id,
                    member_id=target_member_id,
                )
        else:
            if target_member_id == source_member_id:
                raise ValidationError(
                    "Subscription already belongs to this member", field="toMemberId"
                )
            vehicle = await vehicles_repo.get_vehicle(
                session, subscription.vehicle_id, for_update=True
            )
            if vehicle is None:
                raise DataIntegrityError(
                    "Subscription references a missing vehicle",
                    subscription_id=subscription.id,
                    vehicle_id=subscription.vehicle_id,
                )
            # The vehicle changes owner, so no other row may still point at it.
            others = await subscriptions_repo.count_for_vehicle(
                session, vehicle.id, exclude_id=subscription.id
            )
            if others:
                raise ValidationError(
                    "Vehicle carries other subscriptions; pick a target vehicle",
                    field="toVehicleId",
                    vehicle_id=vehicle.id,
                )

        now = _utc_now()
        if vehicle.member_id != target_member_id:
            vehicle.member_id = target_member_id
            vehicle.updated_at = now
        subscription.member_id = target_member_id
        subscription.vehicle_id = vehicle.id
        subscription.updated_at = now
        await session.commit()
        logger.info(
            "subscription_transferred subscription_id=%s from_member=%s to_member=%s "
            "vehicle_id=%s reason=%r",
            subscription.id,
            source_member_id,
            target_member_id,
            vehicle.id,
            reason,
        )
        return await _joined_payload(session, subscription.id)

    return await store_write(session, "subscriptions.transfer", _run, timeout_ms=timeout_ms)


async def mark_overdue_subscriptions(
    session: AsyncSession, *, now: datetime | None = None, timeout_ms: int | None = None
) -> int:
    # Sweep active subscriptions whose billing date already passed.
    cutoff = now or _utc_now()

    async def _run() -> int:
        updated = await subscriptions_repo.mark_overdue(session, now=cutoff)
        await session.commit()
        logger.info("overdue_sweep updated=%s cutoff=%s", updated, cutoff.isoformat())
        return updated

    return await store_write(session, "subscriptions.mark_overdue", _run, timeout_ms=timeout_ms)
