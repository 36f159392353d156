from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.domain.models import Vehicle


async def get_vehicle(
    session: AsyncSession, vehicle_id: str, *, for_update: bool = False
) -> Vehicle | None:
    stmt = select(Vehicle).where(Vehicle.id == vehicle_id)
    if for_update:
        stmt = stmt.with_for_update()
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_for_member(session: AsyncSession, member_id: str) -> list[Vehicle]:
    # Stable ordering avoids non-deterministic detail pages.
    result = await session.execute(
        select(Vehicle)
        .where(Vehicle.member_id == member_id)
        .order_by(Vehicle.created_at, Vehicle.id)
    )
    return list(result.scalars().all())


async def create_vehicle(
    session: AsyncSession,
    *,
    vehicle_id: str,
    member_id: str,
    make: str,
    model: str,
    year: int,
    license_plate: str,
    color: str | None,
    created_at: datetime | None = None,
) -> Vehicle:
    vehicle = Vehicle(
        id=vehicle_id,
        member_id=member_id,
        make=make,
        model=model,
        year=year,
        license_plate=license_plate,
        color=color,
    )
    if created_at is not None:
        vehicle.created_at = created_at
        vehicle.updated_at = created_at
    session.add(vehicle)
    return vehicle
