from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import Select, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from csrportal.domain.models import Member, Subscription, Vehicle
from csrportal.services.filters import SubscriptionFilters, like_pattern


# (subscription, member or None, vehicle or None); None means a dangling reference.
JoinedSubscription = tuple[Subscription, Member | None, Vehicle | None]


def _joined(stmt: Select[Any]) -> Select[Any]:
    # Outer joins keep dangling references visible so callers can flag them.
    return stmt.outerjoin(Member, Member.id == Subscription.member_id).outerjoin(
        Vehicle, Vehicle.id == Subscription.vehicle_id
    )


def subscription_filter_clauses(filters: SubscriptionFilters) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = []
    if filters.search:
        pattern = like_pattern(filters.search)
        clauses.append(
            or_(
                Member.name.ilike(pattern, escape="\\"),
                Member.email.ilike(pattern, escape="\\"),
                Vehicle.license_plate.ilike(pattern, escape="\\"),
            )
        )
    if filters.status:
        clauses.append(Subscription.status == filters.status)
    if filters.plan_name is not None:
        clauses.append(Subscription.plan_name == filters.plan_name)
    return clauses


async def count_subscriptions(session: AsyncSession, filters: SubscriptionFilters) -> int:
    stmt = _joined(select(func.count(Subscription.id)).select_from(Subscription)).where(
        *subscription_filter_clauses(filters)
    )
    result = await session.execute(stmt)
    return int(result.scalar() or 0)


async def list_subscriptions(
    session: AsyncSession,
    filters: SubscriptionFilters,
    *,
    order_by: Sequence[ColumnElement[Any]],
    offset: int,
    limit: int,
) -> list[JoinedSubscription]:
    stmt = (
        _joined(select(Subscription, Member, Vehicle))
        .where(*subscription_filter_clauses(filters))
        .order_by(*order_by)
        .offset(offset)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return [(row[0], row[1], row[2]) for row in result.all()]


async def get_joined(session: AsyncSession, subscription_id: str) -> JoinedSubscription | None:
    result = await session.execute(
        _joined(select(Subscription, Member, Vehicle)).where(Subscription.id == subscription_id)
    )
    row = result.first()
    if row is None:
        return None
    return row[0], row[1], row[2]


async def get_subscription(
    session: AsyncSession, subscription_id: str, *, for_update: bool = False
) -> Subscription | None:
    stmt = select(Subscription).where(Subscription.id == subscription_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_for_member(
    session: AsyncSession, member_id: str
) -> list[tuple[Subscription, Vehicle | None]]:
    result = await session.execute(
        select(Subscription, Vehicle)
        .outerjoin(Vehicle, Vehicle.id == Subscription.vehicle_id)
        .where(Subscription.member_id == member_id)
        .order_by(Subscription.created_at, Subscription.id)
    )
    return [(row[0], row[1]) for row in result.all()]


async def billing_rows_for_members(
    session: AsyncSession, member_ids: Sequence[str]
) -> list[tuple[str, str, Decimal, str]]:
    # Minimal projection used to derive per-member rollups on read.
    if not member_ids:
        return []
    result = await session.execute(
        select(
            Subscription.member_id,
            Subscription.status,
            Subscription.amount,
            Subscription.billing_cycle,
        ).where(Subscription.member_id.in_(list(member_ids)))
    )
    return [(row[0], row[1], row[2], row[3]) for row in result.all()]


async def count_live_for_vehicle(
    session: AsyncSession, vehicle_id: str, *, exclude_id: str | None = None
) -> int:
    # Non-cancelled subscriptions still backed by this vehicle.
    stmt = select(func.count(Subscription.id)).where(
        Subscription.vehicle_id == vehicle_id,
        Subscription.status != "cancelled",
    )
    if exclude_id is not None:
        stmt = stmt.where(Subscription.id != exclude_id)
    result = await session.execute(stmt)
    return int(result.scalar() or 0)


async def count_for_vehicle(
    session: AsyncSession, vehicle_id: str, *, exclude_id: str | None = None
) -> int:
    # Every subscription on the vehicle, cancelled history included.
    stmt = select(func.count(Subscription.id)).where(Subscription.vehicle_id == vehicle_id)
    if exclude_id is not None:
        stmt = stmt.where(Subscription.id != exclude_id)
    result = await session.execute(stmt)
    return int(result.scalar() or 0)


async def create_subscription(
    session: AsyncSession,
    *,
    subscription_id: str,
    member_id: str,
    vehicle_id: str,
    plan_name: str,
    amount: Decimal,
    status: str,
    billing_cycle: str,
    next_billing_date: datetime,
    start_date: datetime,
    end_date: datetime | None = None,
    created_at: datetime | None = None,
) -> Subscription:
    subscription = Subscription(
        id=subscription_id,
        member_id=member_id,
        vehicle_id=vehicle_id,
        plan_name=plan_name,
        amount=amount,
        status=status,
        billing_cycle=billing_cycle,
        next_billing_date=next_billing_date,
        start_date=start_date,
        end_date=end_date,
    )
    if created_at is not None:
        subscription.created_at = created_at
        subscription.updated_at = created_at
    session.add(subscription)
    return subscription


async def count_by_status(session: AsyncSession, status: str | None = None) -> int:
    stmt = select(func.count(Subscription.id))
    if status is not None:
        stmt = stmt.where(Subscription.status == status)
    result = await session.execute(stmt)
    return int(result.scalar() or 0)


async def count_created_before(session: AsyncSession, cutoff: datetime) -> int:
    result = await session.execute(
        select(func.count(Subscription.id)).where(Subscription.created_at < cutoff)
    )
    return int(result.scalar() or 0)


async def active_amounts_by_cycle(session: AsyncSession) -> dict[str, Decimal]:
    # Exact sums per billing cycle; normalization happens in the service layer.
    result = await session.execute(
        select(Subscription.billing_cycle, func.sum(Subscription.amount))
        .where(Subscription.status == "active")
        .group_by(Subscription.billing_cycle)
    )
    totals: dict[str, Decimal] = {}
    for cycle, total in result.all():
        totals[str(cycle)] = Decimal(str(total or 0))
    return totals


async def _update_status(
    session: AsyncSession, criteria: list[ColumnElement[bool]], *, status: str, now: datetime
) -> int:
    # Lock matching rows, then rewrite them by id.
    ids = list(
        (await session.execute(select(Subscription.id).where(*criteria).with_for_update()))
        .scalars()
        .all()
    )
    if not ids:
        return 0
    await session.execute(
        update(Subscription)
        .where(Subscription.id.in_(ids))
        .values(status=status, updated_at=now)
        .execution_options(synchronize_session="fetch")
    )
    return len(ids)


async def mark_overdue(session: AsyncSession, *, now: datetime) -> int:
    # Active subscriptions whose billing date passed without collection.
    return await _update_status(
        session,
        [Subscription.status == "active", Subscription.next_billing_date < now],
        status="overdue",
        now=now,
    )


async def pause_active_for_member(session: AsyncSession, member_id: str, *, now: datetime) -> int:
    return await _update_status(
        session,
        [Subscription.member_id == member_id, Subscription.status == "active"],
        status="paused",
        now=now,
    )
