from __future__ import annotations

import pytest

from csrportal.core.errors import NotFoundError, ValidationError
from csrportal.persistence.repos import subscriptions as subscriptions_repo
from csrportal.persistence.repos import vehicles as vehicles_repo
from csrportal.services import subscriptions as subscriptions_service
from csrportal.services.members import get_member_by_id
from csrportal.tests.utils.factories import seed_demo_accounts, seed_subscription, seed_vehicle


@pytest.mark.asyncio
async def test_vehicle_only_transfer_within_member(session) -> None:
    await seed_demo_accounts(session)
    await seed_vehicle(session, vehicle_id="veh-new", member_id="1", license_plate="NEW-111")
    moved = await subscriptions_service.transfer_subscription(
        session, "sub1", to_vehicle_id="veh-new", reason="Customer sold the BMW"
    )
    assert moved["memberId"] == "1"
    assert moved["vehicleId"] == "veh-new"
    assert moved["vehicle"]["licensePlate"] == "NEW-111"


@pytest.mark.asyncio
async def test_vehicle_only_transfer_rejects_foreign_vehicle(session) -> None:
    await seed_demo_accounts(session)
    with pytest.raises(ValidationError) as excinfo:
        await subscriptions_service.transfer_subscription(
            session, "sub1", to_vehicle_id="veh3", reason="wrong car"
        )
    assert excinfo.value.details["field"] == "toVehicleId"
    unchanged = await subscriptions_service.get_subscription_by_id(session, "sub1")
    assert unchanged["vehicleId"] == "veh1"


@pytest.mark.asyncio
async def test_member_and_vehicle_transfer(session) -> None:
    await seed_demo_accounts(session)
    await seed_vehicle(session, vehicle_id="veh-emily", member_id="2", license_plate="EMY-222")
    moved = await subscriptions_service.transfer_subscription(
        session,
        "sub1",
        to_member_id="2",
        to_vehicle_id="veh-emily",
        reason="Gifted to Emily",
    )
    assert moved["memberId"] == "2"
    assert moved["member"]["name"] == "Emily Davis"
    assert moved["vehicle"]["memberId"] == "2"

    # The receiving member's vehicle must be used; John's own car is rejected.
    with pytest.raises(ValidationError):
        await subscriptions_service.transfer_subscription(
            session, "sub2", to_member_id="2", to_vehicle_id="veh2", reason="mismatch"
        )


@pytest.mark.asyncio
async def test_member_only_transfer_moves_the_vehicle(session) -> None:
    await seed_demo_accounts(session)
    moved = await subscriptions_service.transfer_subscription(
        session, "sub2", to_member_id="3", reason="Car sold to Michael"
    )
    assert moved["memberId"] == "3"
    assert moved["vehicleId"] == "veh2"
    assert moved["vehicle"]["memberId"] == "3"
    vehicle = await vehicles_repo.get_vehicle(session, "veh2")
    assert vehicle.member_id == "3"


@pytest.mark.asyncio
async def test_member_only_transfer_blocked_by_other_live_subscriptions(session) -> None:
    await seed_demo_accounts(session)
    await seed_subscription(
        session,
        subscription_id="sub-extra",
        member_id="1",
        vehicle_id="veh1",
        plan_name="Basic Wash",
        amount="19.99",
    )
    with pytest.raises(ValidationError):
        await subscriptions_service.transfer_subscription(
            session, "sub1", to_member_id="3", reason="Car sold"
        )
    # Nothing moved: both references are unchanged.
    subscription = await subscriptions_repo.get_subscription(session, "sub1")
    vehicle = await vehicles_repo.get_vehicle(session, "veh1")
    assert subscription.member_id == "1"
    assert vehicle.member_id == "1"


@pytest.mark.asyncio
async def test_member_only_transfer_blocked_by_cancelled_history(session) -> None:
    await seed_demo_accounts(session)
    await seed_subscription(
        session,
        subscription_id="sub-old",
        member_id="1",
        vehicle_id="veh2",
        plan_name="Basic Wash",
        amount="19.99",
        status="cancelled",
    )
    with pytest.raises(ValidationError) as excinfo:
        await subscriptions_service.transfer_subscription(
            session, "sub2", to_member_id="3", reason="Car sold to Michael"
        )
    assert excinfo.value.details["vehicle_id"] == "veh2"

    # John keeps the car, so his cancelled history still points at his own vehicle.
    member = await get_member_by_id(session, "1")
    owned = {vehicle["id"] for vehicle in member["vehicles"]}
    assert {sub["vehicleId"] for sub in member["subscriptions"]} <= owned
    vehicle = await vehicles_repo.get_vehicle(session, "veh2")
    assert vehicle.member_id == "1"


@pytest.mark.asyncio
async def test_transfer_preconditions(session) -> None:
    await seed_demo_accounts(session)
    with pytest.raises(ValidationError):
        await subscriptions_service.transfer_subscription(session, "sub1", reason="no target")
    with pytest.raises(ValidationError):
        await subscriptions_service.transfer_subscription(
            session, "sub1", to_member_id="2", reason="  "
        )
    with pytest.raises(ValidationError):
        await subscriptions_service.transfer_subscription(
            session, "sub5", to_member_id="1", reason="cancelled"
        )
    with pytest.raises(ValidationError):
        await subscriptions_service.transfer_subscription(
            session, "sub1", to_member_id="5", reason="cancelled member"
        )
    with pytest.raises(ValidationError):
        await subscriptions_service.transfer_subscription(
            session, "sub1", to_member_id="1", reason="same owner"
        )
    with pytest.raises(NotFoundError):
        await subscriptions_service.transfer_subscription(
            session, "sub1", to_member_id="ghost", reason="nobody"
        )
    with pytest.raises(NotFoundError):
        await subscriptions_service.transfer_subscription(
            session, "sub1", to_vehicle_id="ghost", reason="no car"
        )
    with pytest.raises(NotFoundError):
        await subscriptions_service.transfer_subscription(
            session, "missing", to_member_id="2", reason="no subscription"
        )
