from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from csrportal.domain.models import Member, Subscription, SupportTicket, Vehicle
from csrportal.persistence.repos import members as members_repo
from csrportal.persistence.repos import subscriptions as subscriptions_repo
from csrportal.persistence.repos import support_tickets as tickets_repo
from csrportal.persistence.repos import vehicles as vehicles_repo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def seed_member(
    session: AsyncSession,
    *,
    member_id: str,
    name: str,
    email: str | None = None,
    phone: str | None = "(555) 123-4567",
    status: str = "active",
    created_at: datetime | None = None,
) -> Member:
    member = await members_repo.create_member(
        session,
        member_id=member_id,
        name=name,
        email=email or f"{member_id}@example.com",
        phone=phone,
        status=status,
        created_at=created_at or utc_now() - timedelta(days=90),
    )
    await session.commit()
    return member


async def seed_vehicle(
    session: AsyncSession,
    *,
    vehicle_id: str,
    member_id: str,
    license_plate: str | None = None,
    make: str = "Honda",
    model: str = "Civic",
    year: int = 2021,
    color: str | None = "White",
) -> Vehicle:
    vehicle = await vehicles_repo.create_vehicle(
        session,
        vehicle_id=vehicle_id,
        member_id=member_id,
        make=make,
        model=model,
        year=year,
        license_plate=license_plate or vehicle_id.upper(),
        color=color,
        created_at=utc_now() - timedelta(days=90),
    )
    await session.commit()
    return vehicle


async def seed_subscription(
    session: AsyncSession,
    *,
    subscription_id: str,
    member_id: str,
    vehicle_id: str,
    plan_name: str = "Premium Wash",
    amount: str = "29.99",
    status: str = "active",
    billing_cycle: str = "monthly",
    next_billing_date: datetime | None = None,
    created_at: datetime | None = None,
) -> Subscription:
    created = created_at or utc_now() - timedelta(days=60)
    subscription = await subscriptions_repo.create_subscription(
        session,
        subscription_id=subscription_id,
        member_id=member_id,
        vehicle_id=vehicle_id,
        plan_name=plan_name,
        amount=Decimal(amount),
        status=status,
        billing_cycle=billing_cycle,
        next_billing_date=next_billing_date or utc_now() + timedelta(days=15),
        start_date=created,
        created_at=created,
    )
    await session.commit()
    return subscription


async def seed_ticket(
    session: AsyncSession,
    *,
    ticket_id: str,
    member_id: str,
    subject: str = "Payment failed for subscription",
    priority: str = "medium",
    status: str = "open",
    category: str = "billing",
    created_at: datetime | None = None,
) -> SupportTicket:
    ticket = await tickets_repo.create_ticket(
        session,
        ticket_id=ticket_id,
        member_id=member_id,
        subject=subject,
        description=f"{subject} (details)",
        priority=priority,
        category=category,
        assigned_to="Sarah Johnson",
        status=status,
        created_at=created_at or utc_now(),
    )
    await session.commit()
    return ticket


async def seed_demo_accounts(session: AsyncSession) -> None:
    """Five members mirroring the demo dataset.

    John Smith (1) owns two active monthly subscriptions (29.99 + 19.99),
    Emily Davis (2) one overdue, Michael Johnson (3) one paused, Sarah Wilson
    (4, suspended) one cancelled and David Brown (5, cancelled) none.
    """
    base = utc_now() - timedelta(days=120)
    members = (
        ("1", "John Smith", "john.smith@email.com", "active"),
        ("2", "Emily Davis", "emily.davis@email.com", "active"),
        ("3", "Michael Johnson", "michael.j@email.com", "active"),
        ("4", "Sarah Wilson", "sarah.wilson@email.com", "suspended"),
        ("5", "David Brown", "david.brown@email.com", "cancelled"),
    )
    for index, (member_id, name, email, status) in enumerate(members):
        await seed_member(
            session,
            member_id=member_id,
            name=name,
            email=email,
            status=status,
            created_at=base + timedelta(days=index),
        )
    vehicles = (
        ("veh1", "1", "ABC-123", "BMW", "X5"),
        ("veh2", "1", "XYZ-789", "Honda", "Civic"),
        ("veh3", "2", "TES-001", "Tesla", "Model 3"),
        ("veh4", "3", "FRD-456", "Ford", "F-150"),
        ("veh5", "4", "AUD-789", "Audi", "A4"),
    )
    for vehicle_id, member_id, plate, make, model in vehicles:
        await seed_vehicle(
            session,
            vehicle_id=vehicle_id,
            member_id=member_id,
            license_plate=plate,
            make=make,
            model=model,
        )
    subscriptions = (
        ("sub1", "1", "veh1", "Premium Wash", "29.99", "active"),
        ("sub2", "1", "veh2", "Basic Wash", "19.99", "active"),
        ("sub3", "2", "veh3", "Premium Wash", "29.99", "overdue"),
        ("sub4", "3", "veh4", "Basic Wash", "19.99", "paused"),
        ("sub5", "4", "veh5", "Premium Wash", "29.99", "cancelled"),
    )
    for index, (sub_id, member_id, vehicle_id, plan, amount, status) in enumerate(subscriptions):
        await seed_subscription(
            session,
            subscription_id=sub_id,
            member_id=member_id,
            vehicle_id=vehicle_id,
            plan_name=plan,
            amount=amount,
            status=status,
            created_at=base + timedelta(days=index, hours=1),
        )
