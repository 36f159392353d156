from __future__ import annotations

from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from csrportal.domain.models import Member, SupportTicket
from csrportal.services.filters import TicketFilters, like_pattern


def ticket_filter_clauses(filters: TicketFilters) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = []
    if filters.search:
        pattern = like_pattern(filters.search)
        clauses.append(
            or_(
                Member.name.ilike(pattern, escape="\\"),
                Member.email.ilike(pattern, escape="\\"),
                SupportTicket.subject.ilike(pattern, escape="\\"),
                SupportTicket.id.ilike(pattern, escape="\\"),
            )
        )
    if filters.status:
        clauses.append(SupportTicket.status == filters.status)
    if filters.priority:
        clauses.append(SupportTicket.priority == filters.priority)
    if filters.category:
        clauses.append(SupportTicket.category == filters.category)
    return clauses


async def list_tickets(
    session: AsyncSession, filters: TicketFilters
) -> list[tuple[SupportTicket, Member | None]]:
    # Newest first; id breaks ties between tickets opened in the same instant.
    result = await session.execute(
        select(SupportTicket, Member)
        .outerjoin(Member, Member.id == SupportTicket.member_id)
        .where(*ticket_filter_clauses(filters))
        .order_by(SupportTicket.created_at.desc(), SupportTicket.id.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def create_ticket(
    session: AsyncSession,
    *,
    ticket_id: str,
    member_id: str,
    subject: str,
    description: str,
    priority: str,
    category: str,
    assigned_to: str,
    status: str = "open",
    created_at: datetime | None = None,
    last_response: datetime | None = None,
) -> SupportTicket:
    ticket = SupportTicket(
        id=ticket_id,
        member_id=member_id,
        subject=subject,
        description=description,
        priority=priority,
        status=status,
        category=category,
        assigned_to=assigned_to,
        last_response=last_response,
    )
    if created_at is not None:
        ticket.created_at = created_at
    session.add(ticket)
    return ticket
