from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from csrportal.domain.models import Member, Subscription
from csrportal.services.filters import MemberFilters, like_pattern


def member_filter_clauses(filters: MemberFilters) -> list[ColumnElement[bool]]:
    # Every predicate is ANDed; search itself is an OR over name and email.
    clauses: list[ColumnElement[bool]] = []
    if filters.search:
        pattern = like_pattern(filters.search)
        clauses.append(
            or_(
                Member.name.ilike(pattern, escape="\\"),
                Member.email.ilike(pattern, escape="\\"),
            )
        )
    if filters.status:
        clauses.append(Member.status == filters.status)
    overdue = filters.has_overdue_subscriptions
    if overdue is not None:
        overdue_members = select(Subscription.member_id).where(Subscription.status == "overdue")
        clauses.append(
            Member.id.in_(overdue_members) if overdue else Member.id.not_in(overdue_members)
        )
    return clauses


async def count_members(session: AsyncSession, filters: MemberFilters) -> int:
    stmt = select(func.count(Member.id)).where(*member_filter_clauses(filters))
    result = await session.execute(stmt)
    return int(result.scalar() or 0)


async def list_members(
    session: AsyncSession,
    filters: MemberFilters,
    *,
    order_by: Sequence[ColumnElement[Any]],
    offset: int,
    limit: int,
) -> list[Member]:
    stmt = (
        select(Member)
        .where(*member_filter_clauses(filters))
        .order_by(*order_by)
        .offset(offset)
        .limit(limit)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_member(
    session: AsyncSession, member_id: str, *, for_update: bool = False
) -> Member | None:
    stmt = select(Member).where(Member.id == member_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_member(
    session: AsyncSession,
    *,
    member_id: str,
    name: str,
    email: str,
    phone: str | None,
    status: str,
    created_at: datetime | None = None,
) -> Member:
    member = Member(id=member_id, name=name, email=email, phone=phone, status=status)
    if created_at is not None:
        member.created_at = created_at
        member.updated_at = created_at
        member.last_activity = created_at
    session.add(member)
    return member


async def count_by_status(session: AsyncSession, status: str | None = None) -> int:
    stmt = select(func.count(Member.id))
    if status is not None:
        stmt = stmt.where(Member.status == status)
    result = await session.execute(stmt)
    return int(result.scalar() or 0)


async def count_created_before(session: AsyncSession, cutoff: datetime) -> int:
    result = await session.execute(
        select(func.count(Member.id)).where(Member.created_at < cutoff)
    )
    return int(result.scalar() or 0)


async def email_taken(session: AsyncSession, email: str, *, exclude_id: str | None = None) -> bool:
    stmt = select(func.count(Member.id)).where(func.lower(Member.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(Member.id != exclude_id)
    result = await session.execute(stmt)
    return int(result.scalar() or 0) > 0
