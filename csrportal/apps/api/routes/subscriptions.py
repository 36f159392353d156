from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.apps.api.deps import get_db, request_timeout_ms
from csrportal.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from csrportal.apps.api.response import ApiModel, SuccessEnvelope, success_response
from csrportal.apps.api.routes.members import Vehicle
from csrportal.services import subscriptions as subscriptions_service
from csrportal.services.filters import SubscriptionFilters


router = APIRouter(prefix="/subscriptions", tags=["subscriptions"], responses=DEFAULT_ERROR_RESPONSES)

# URL segment -> lifecycle action name.
LIFECYCLE_ACTIONS = {
    "pause": "pause",
    "resume": "resume",
    "cancel": "cancel",
    "mark-overdue": "mark_overdue",
    "recover": "recover",
}


class MemberSummary(ApiModel):
    id: str
    name: str
    email: str
    phone: str | None = None
    status: str


class Subscription(ApiModel):
    id: str
    member_id: str
    vehicle_id: str
    plan_name: str
    amount: float
    status: str
    billing_cycle: str
    next_billing_date: str
    start_date: str
    end_date: str | None = None
    created_at: str
    updated_at: str
    member: MemberSummary
    vehicle: Vehicle


class SubscriptionPage(ApiModel):
    data: list[Subscription]
    total: int
    page: int
    limit: int
    total_pages: int


class SubscriptionUpdateRequest(ApiModel):
    model_config = ConfigDict(extra="forbid")

    plan_name: str | None = None
    amount: Decimal | None = None
    status: str | None = None
    billing_cycle: str | None = None
    next_billing_date: datetime | None = None


class TransferRequest(ApiModel):
    model_config = ConfigDict(extra="forbid")

    to_member_id: str | None = None
    to_vehicle_id: str | None = None
    reason: str


@router.get("", response_model=SuccessEnvelope[SubscriptionPage])
async def list_subscriptions(
    request: Request,
    search: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    plan_name: str | None = Query(default=None, alias="planName"),
    page: int = 1,
    limit: int | None = None,
    sort: str | None = None,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    # Search covers member name, member email and license plate.
    filters = SubscriptionFilters.from_params(
        search=search, status=status_filter, plan_name=plan_name
    )
    result = await subscriptions_service.list_subscriptions(
        db, filters, page=page, limit=limit, sort=sort, timeout_ms=timeout_ms
    )
    return success_response(request=request, data=result)


@router.get("/{subscription_id}", response_model=SuccessEnvelope[Subscription])
async def get_subscription(
    subscription_id: str,
    request: Request,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    result = await subscriptions_service.get_subscription_by_id(
        db, subscription_id, timeout_ms=timeout_ms
    )
    return success_response(request=request, data=result)


@router.patch("/{subscription_id}", response_model=SuccessEnvelope[Subscription])
async def update_subscription(
    subscription_id: str,
    payload: SubscriptionUpdateRequest,
    request: Request,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    updates = payload.model_dump(by_alias=True, exclude_unset=True)
    result = await subscriptions_service.update_subscription(
        db, subscription_id, updates, timeout_ms=timeout_ms
    )
    return success_response(request=request, data=result)


@router.post(
    "/{subscription_id}/reactivate",
    response_model=SuccessEnvelope[Subscription],
    status_code=status.HTTP_201_CREATED,
)
async def reactivate_subscription(
    subscription_id: str,
    request: Request,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    # Returns the newly opened subscription, not the cancelled one.
    result = await subscriptions_service.reactivate_subscription(
        db, subscription_id, timeout_ms=timeout_ms
    )
    return success_response(request=request, data=result)


@router.post("/{subscription_id}/transfer", response_model=SuccessEnvelope[Subscription])
async def transfer_subscription(
    subscription_id: str,
    payload: TransferRequest,
    request: Request,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    result = await subscriptions_service.transfer_subscription(
        db,
        subscription_id,
        to_member_id=payload.to_member_id,
        to_vehicle_id=payload.to_vehicle_id,
        reason=payload.reason,
        timeout_ms=timeout_ms,
    )
    return success_response(request=request, data=result)


# Registered after the fixed action routes so they are matched first.
@router.post("/{subscription_id}/{action}", response_model=SuccessEnvelope[Subscription])
async def run_lifecycle_action(
    subscription_id: str,
    action: Literal["pause", "resume", "cancel", "mark-overdue", "recover"],
    request: Request,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    result = await subscriptions_service.apply_action(
        db, subscription_id, LIFECYCLE_ACTIONS[action], timeout_ms=timeout_ms
    )
    return success_response(request=request, data=result)
