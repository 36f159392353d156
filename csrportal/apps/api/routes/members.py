from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import ConfigDict
from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.apps.api.deps import get_db, request_timeout_ms
from csrportal.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from csrportal.apps.api.response import ApiModel, SuccessEnvelope, success_response
from csrportal.services import members as members_service
from csrportal.services.filters import MemberFilters


router = APIRouter(prefix="/members", tags=["members"], responses=DEFAULT_ERROR_RESPONSES)


class Vehicle(ApiModel):
    id: str
    member_id: str
    make: str
    model: str
    year: int
    license_plate: str
    color: str | None = None
    created_at: str
    updated_at: str


class Member(ApiModel):
    id: str
    name: str
    email: str
    phone: str | None = None
    status: str
    created_at: str
    updated_at: str
    last_activity: str
    total_subscriptions: int
    monthly_revenue: float
    is_overdue: bool


class MemberSubscription(ApiModel):
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
    vehicle: Vehicle


class MemberDetail(Member):
    subscriptions: list[MemberSubscription]
    vehicles: list[Vehicle]
    recent_activity: list[dict[str, Any]]


class SuspendedMember(Member):
    paused_subscriptions: int


class MemberPage(ApiModel):
    data: list[Member]
    total: int
    page: int
    limit: int
    total_pages: int


class MemberUpdateRequest(ApiModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    status: str | None = None


class SuspendRequest(ApiModel):
    pause_subscriptions: bool = False


class VehicleCreateRequest(ApiModel):
    model_config = ConfigDict(extra="forbid")

    make: str
    model: str
    year: int
    license_plate: str
    color: str | None = None


@router.get("", response_model=SuccessEnvelope[MemberPage])
async def list_members(
    request: Request,
    search: str | None = None,
    status_filter: str | None = Query(default=None, alias="status"),
    has_overdue_subscriptions: bool | None = Query(default=None, alias="hasOverdueSubscriptions"),
    page: int = 1,
    limit: int | None = None,
    sort: str | None = None,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    # Paginated member table with search over name and email.
    filters = MemberFilters.from_params(
        search=search,
        status=status_filter,
        has_overdue_subscriptions=has_overdue_subscriptions,
    )
    result = await members_service.list_members(
        db, filters, page=page, limit=limit, sort=sort, timeout_ms=timeout_ms
    )
    return success_response(request=request, data=result)


@router.get("/{member_id}", response_model=SuccessEnvelope[MemberDetail])
async def get_member(
    member_id: str,
    request: Request,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    result = await members_service.get_member_by_id(db, member_id, timeout_ms=timeout_ms)
    return success_response(request=request, data=result)


@router.patch("/{member_id}", response_model=SuccessEnvelope[Member])
async def update_member(
    member_id: str,
    payload: MemberUpdateRequest,
    request: Request,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    # Only fields present in the body are touched.
    updates = payload.model_dump(by_alias=True, exclude_unset=True)
    result = await members_service.update_member(db, member_id, updates, timeout_ms=timeout_ms)
    return success_response(request=request, data=result)


@router.post("/{member_id}/suspend", response_model=SuccessEnvelope[SuspendedMember])
async def suspend_member(
    member_id: str,
    request: Request,
    payload: SuspendRequest | None = None,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    result = await members_service.suspend_member(
        db,
        member_id,
        pause_subscriptions=payload.pause_subscriptions if payload else False,
        timeout_ms=timeout_ms,
    )
    return success_response(request=request, data=result)


@router.get("/{member_id}/vehicles", response_model=SuccessEnvelope[list[Vehicle]])
async def list_vehicles(
    member_id: str,
    request: Request,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    result = await members_service.list_vehicles_for_member(db, member_id, timeout_ms=timeout_ms)
    return success_response(request=request, data=result)


@router.post(
    "/{member_id}/vehicles",
    response_model=SuccessEnvelope[Vehicle],
    status_code=status.HTTP_201_CREATED,
)
async def add_vehicle(
    member_id: str,
    payload: VehicleCreateRequest,
    request: Request,
    timeout_ms: int | None = Depends(request_timeout_ms),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    result = await members_service.add_vehicle(
        db,
        member_id,
        make=payload.make,
        model=payload.model,
        year=payload.year,
        license_plate=payload.license_plate,
        color=payload.color,
        timeout_ms=timeout_ms,
    )
    return success_response(request=request, data=result)
