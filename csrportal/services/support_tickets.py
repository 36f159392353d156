from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.core.errors import DataIntegrityError, NotFoundError
from csrportal.domain.models import Member, SupportTicket
from csrportal.domain.statuses import DEFAULT_ASSIGNEES, TICKET_CATEGORIES, TICKET_PRIORITIES
from csrportal.persistence import mapping
from csrportal.persistence.guards import store_call, store_write
from csrportal.persistence.repos import members as members_repo
from csrportal.persistence.repos import support_tickets as tickets_repo
from csrportal.services.filters import TicketFilters
from csrportal.services.validators import require_text, validate_choice


logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ticket_payload(ticket: SupportTicket, member: Member | None) -> dict[str, Any]:
    if member is None:
        raise DataIntegrityError(
            "Ticket references a missing member",
            ticket_id=ticket.id,
            member_id=ticket.member_id,
        )
    payload = mapping.row_to_payload(ticket)
    payload["member"] = {"id": member.id, "name": member.name, "email": member.email}
    return payload


async def list_support_tickets(
    session: AsyncSession, filters: TicketFilters, *, timeout_ms: int | None = None
) -> list[dict[str, Any]]:
    # Unpaginated, newest first.
    async def _run() -> list[dict[str, Any]]:
        rows = await tickets_repo.list_tickets(session, filters)
        return [ticket_payload(ticket, member) for ticket, member in rows]

    return await store_call("tickets.list", _run, timeout_ms=timeout_ms)


async def create_support_ticket(
    session: AsyncSession,
    *,
    member_id: str,
    subject: str,
    description: str,
    category: str,
    priority: str | None = None,
    assigned_to: str | None = None,
    timeout_ms: int | None = None,
) -> dict[str, Any]:
    """Open a ticket for an existing member.

    Priority defaults to ``medium``; without an explicit assignee the ticket
    goes to the queue that owns its category.
    """
    fields = {
        "subject": require_text(subject, field="subject"),
        "description": require_text(description, field="description"),
        "category": validate_choice(category, TICKET_CATEGORIES, field="category"),
        "priority": validate_choice(priority or "medium", TICKET_PRIORITIES, field="priority"),
    }
    if assigned_to is not None and assigned_to.strip():
        fields["assigned_to"] = assigned_to.strip()
    else:
        fields["assigned_to"] = DEFAULT_ASSIGNEES[fields["category"]]

    async def _run() -> dict[str, Any]:
        member = await members_repo.get_member(session, member_id)
        if member is None:
            raise NotFoundError("member", member_id)
        ticket_id = f"T-{uuid.uuid4().hex[:8].upper()}"
        ticket = await tickets_repo.create_ticket(
            session,
            ticket_id=ticket_id,
            member_id=member.id,
            created_at=_utc_now(),
            **fields,
        )
        await session.commit()
        logger.info(
            "ticket_created ticket_id=%s member_id=%s category=%s assigned_to=%s",
            ticket_id,
            member.id,
            fields["category"],
            fields["assigned_to"],
        )
        return ticket_payload(ticket, member)

    return await store_write(session, "tickets.create", _run, timeout_ms=timeout_ms)
