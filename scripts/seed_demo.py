from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from csrportal.persistence.db import SessionLocal
from csrportal.persistence.repos import members as members_repo
from csrportal.persistence.repos import subscriptions as subscriptions_repo
from csrportal.persistence.repos import support_tickets as tickets_repo
from csrportal.persistence.repos import vehicles as vehicles_repo


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class DemoMember:
    id: str
    name: str
    email: str
    phone: str
    status: str
    created_at: str


@dataclass(frozen=True)
class DemoSubscription:
    # Each demo subscription brings its own vehicle, owned by the same member.
    id: str
    member_id: str
    vehicle: tuple[str, str, str, int, str, str]
    plan_name: str
    amount: str
    status: str
    next_billing_date: str
    start_date: str
    created_at: str
    end_date: str | None = None


@dataclass(frozen=True)
class DemoTicket:
    id: str
    member_id: str
    subject: str
    description: str
    priority: str
    status: str
    category: str
    assigned_to: str
    created_at: str
    last_response: str


DEMO_MEMBERS = (
    DemoMember("1", "John Smith", "john.smith@email.com", "(555) 123-4567", "active", "2024-01-15T10:30:00"),
    DemoMember("2", "Emily Davis", "emily.davis@email.com", "(555) 987-6543", "active", "2024-01-10T09:15:00"),
    DemoMember("3", "Michael Johnson", "michael.j@email.com", "(555) 456-7890", "active", "2024-01-05T16:45:00"),
    DemoMember("4", "Sarah Wilson", "sarah.wilson@email.com", "(555) 321-0987", "suspended", "2023-12-28T13:20:00"),
    DemoMember("5", "David Brown", "david.brown@email.com", "(555) 654-3210", "cancelled", "2023-12-20T11:30:00"),
)

DEMO_SUBSCRIPTIONS = (
    DemoSubscription(
        "sub1", "1", ("veh1", "BMW", "X5", 2022, "ABC-123", "Black"),
        "Premium Wash", "29.99", "active",
        "2024-02-15T00:00:00", "2024-01-15T00:00:00", "2024-01-15T10:30:00",
    ),
    DemoSubscription(
        "sub2", "1", ("veh2", "Honda", "Civic", 2021, "XYZ-789", "White"),
        "Basic Wash", "19.99", "active",
        "2024-02-20T00:00:00", "2024-01-20T00:00:00", "2024-01-20T14:45:00",
    ),
    DemoSubscription(
        "sub3", "2", ("veh3", "Tesla", "Model 3", 2023, "TES-001", "Blue"),
        "Premium Wash", "29.99", "overdue",
        "2024-01-25T00:00:00", "2024-01-10T00:00:00", "2024-01-10T09:15:00",
    ),
    DemoSubscription(
        "sub4", "3", ("veh4", "Ford", "F-150", 2020, "FRD-456", "Red"),
        "Basic Wash", "19.99", "paused",
        "2024-03-01T00:00:00", "2024-01-05T00:00:00", "2024-01-05T16:45:00",
    ),
    DemoSubscription(
        "sub5", "4", ("veh5", "Audi", "A4", 2021, "AUD-789", "Silver"),
        "Premium Wash", "29.99", "cancelled",
        "2024-02-28T00:00:00", "2023-12-28T00:00:00", "2023-12-28T13:20:00",
        end_date="2024-01-15T00:00:00",
    ),
)

DEMO_TICKETS = (
    DemoTicket(
        "T-001", "1", "Payment failed for subscription",
        "Customer's credit card was declined for monthly subscription payment",
        "high", "open", "billing", "Sarah Johnson", "2024-01-25T10:30:00", "2024-01-25T11:15:00",
    ),
    DemoTicket(
        "T-002", "2", "Request to transfer subscription",
        "Customer wants to transfer subscription from old vehicle to new Tesla Model 3",
        "medium", "in_progress", "account", "Mike Wilson", "2024-01-25T09:45:00", "2024-01-25T10:30:00",
    ),
    DemoTicket(
        "T-003", "3", "Cannot access car wash services",
        "Customer reports that wash stations are not recognizing their membership",
        "high", "open", "technical", "Sarah Johnson", "2024-01-25T08:20:00", "2024-01-25T09:00:00",
    ),
    DemoTicket(
        "T-004", "4", "Refund request for cancelled service",
        "Customer requesting refund for remaining days after early cancellation",
        "low", "resolved", "billing", "Jennifer Brown", "2024-01-24T16:30:00", "2024-01-25T08:45:00",
    ),
    DemoTicket(
        "T-005", "5", "Account reactivation request",
        "Former member asking how to restart a cancelled membership",
        "medium", "closed", "account", "Mike Wilson", "2024-01-23T14:10:00", "2024-01-24T10:00:00",
    ),
)


async def seed_demo() -> int:
    async with SessionLocal() as session:
        if await members_repo.get_member(session, DEMO_MEMBERS[0].id) is not None:
            print("Demo data already seeded; skipping.")
            return 0

        for member in DEMO_MEMBERS:
            await members_repo.create_member(
                session,
                member_id=member.id,
                name=member.name,
                email=member.email,
                phone=member.phone,
                status=member.status,
                created_at=_ts(member.created_at),
            )
        await session.flush()

        for sub in DEMO_SUBSCRIPTIONS:
            vehicle_id, make, model, year, plate, color = sub.vehicle
            await vehicles_repo.create_vehicle(
                session,
                vehicle_id=vehicle_id,
                member_id=sub.member_id,
                make=make,
                model=model,
                year=year,
                license_plate=plate,
                color=color,
                created_at=_ts(sub.created_at),
            )
        await session.flush()

        for sub in DEMO_SUBSCRIPTIONS:
            await subscriptions_repo.create_subscription(
                session,
                subscription_id=sub.id,
                member_id=sub.member_id,
                vehicle_id=sub.vehicle[0],
                plan_name=sub.plan_name,
                amount=Decimal(sub.amount),
                status=sub.status,
                billing_cycle="monthly",
                next_billing_date=_ts(sub.next_billing_date),
                start_date=_ts(sub.start_date),
                end_date=_ts(sub.end_date) if sub.end_date else None,
                created_at=_ts(sub.created_at),
            )

        for ticket in DEMO_TICKETS:
            await tickets_repo.create_ticket(
                session,
                ticket_id=ticket.id,
                member_id=ticket.member_id,
                subject=ticket.subject,
                description=ticket.description,
                priority=ticket.priority,
                status=ticket.status,
                category=ticket.category,
                assigned_to=ticket.assigned_to,
                created_at=_ts(ticket.created_at),
                last_response=_ts(ticket.last_response),
            )
        await session.commit()
        print(
            f"Seeded {len(DEMO_MEMBERS)} members, {len(DEMO_SUBSCRIPTIONS)} subscriptions, "
            f"{len(DEMO_TICKETS)} tickets."
        )
        return 0


def main() -> int:
    # Surface clear failures and exit non-zero so CI/dev scripts can detect issues.
    try:
        return asyncio.run(seed_demo())
    except Exception as exc:  # noqa: BLE001 - surface any setup or DB errors
        print(f"seed_demo failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
