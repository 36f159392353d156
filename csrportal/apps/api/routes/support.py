from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.apps.api.deps import get_db, request_timeout_ms
from csrportal.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from csrportal.apps.api.response import ApiModel, SuccessEnvelope, success_response
from csrportal.services import support_tickets as tickets_service
from csrportal.services.filters import TicketFilters


router = APIRouter(prefix="/support", tags=["support"], responses=DEFAULT_ERROR_RESPONSES)


class TicketMember(ApiModel):
    id: str
    name: str
    email: str


class SupportTicket(ApiModel):
    id: str
    member_id: str
    member: TicketMember
    subject: str
    description: str
    priority: str
    status: str
    category: str
    assigned_to: str
    created_at: str
    last_response: str | None = None


class TicketCreateRequest(ApiModel):
    model_config = ConfigDict(extra="forbid")

    member_id: str
    subject: str
    description: str
    category: str
    priority: str | None = None
    assigned_to: str | None = None


@router.get("/tickets", response_model=SuccessEnvelope[list[SupportTicket]])
async def list_tickets(
    request: Request,
    search: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    priority: str | None = None,
    category: str | None = None,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    # "all" is accepted for status/priority/category and means no filter.
    filters = TicketFilters.from_params(
        search=search, status=status_filter, priority=priority, category=category
    )
    result = await tickets_service.list_support_tickets(db, filters, timeout_ms=timeout_ms)
    return success_response(request=request, data=result)


@router.post(
    "/tickets",
    response_model=SuccessEnvelope[SupportTicket],
    status_code=status.HTTP_201_CREATED,
)
async def create_ticket(
    payload: TicketCreateRequest,
    request: Request,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    result = await tickets_service.create_support_ticket(
        db,
        member_id=payload.member_id,
        subject=payload.subject,
        description=payload.description,
        category=payload.category,
        priority=payload.priority,
        assigned_to=payload.assigned_to,
        timeout_ms=timeout_ms,
    )
    return success_response(request=request, data=result)
