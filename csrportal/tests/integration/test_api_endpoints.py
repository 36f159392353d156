from __future__ import annotations

import pytest

from csrportal.tests.utils.factories import seed_demo_accounts


@pytest.mark.asyncio
async def test_member_list_envelope(client, session) -> None:
    await seed_demo_accounts(session)
    response = await client.get("/v1/members", params={"limit": 2, "sort": "name"})
    assert response.status_code == 200
    body = response.json()
    assert body["meta"]["api_version"] == "v1"
    assert body["meta"]["request_id"] == response.headers["X-Request-Id"]
    page = body["data"]
    assert page["total"] == 5
    assert page["totalPages"] == 3
    assert [member["name"] for member in page["data"]] == ["David Brown", "Emily Davis"]
    assert "totalSubscriptions" in page["data"][0]


@pytest.mark.asyncio
async def test_incoming_request_id_is_echoed(client) -> None:
    response = await client.get("/v1/members", headers={"X-Request-Id": "req-123"})
    assert response.status_code == 200
    assert response.headers["X-Request-Id"] == "req-123"
    assert response.json()["meta"]["request_id"] == "req-123"


@pytest.mark.asyncio
async def test_member_filters_over_http(client, session) -> None:
    await seed_demo_accounts(session)
    overdue = await client.get("/v1/members", params={"hasOverdueSubscriptions": "true"})
    assert [member["id"] for member in overdue.json()["data"]["data"]] == ["2"]
    searched = await client.get("/v1/members", params={"search": "SMITH"})
    assert [member["id"] for member in searched.json()["data"]["data"]] == ["1"]

    # Overdue is a subscription status, not a member status.
    rejected = await client.get("/v1/members", params={"status": "overdue"})
    assert rejected.status_code == 422
    assert rejected.json()["error"]["code"] == "VALIDATION_ERROR"
    assert rejected.json()["error"]["details"]["field"] == "status"


@pytest.mark.asyncio
async def test_pagination_errors(client) -> None:
    response = await client.get("/v1/subscriptions", params={"page": 0})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"
    response = await client.get("/v1/subscriptions", params={"sort": "-color"})
    assert response.status_code == 422
    assert response.json()["error"]["details"]["field"] == "sort"


@pytest.mark.asyncio
async def test_member_detail_and_not_found(client, session) -> None:
    await seed_demo_accounts(session)
    response = await client.get("/v1/members/1")
    assert response.status_code == 200
    detail = response.json()["data"]
    assert detail["totalSubscriptions"] == 2
    assert detail["monthlyRevenue"] == pytest.approx(49.98)
    assert {sub["vehicle"]["licensePlate"] for sub in detail["subscriptions"]} == {
        "ABC-123",
        "XYZ-789",
    }

    missing = await client.get("/v1/members/nope")
    assert missing.status_code == 404
    error = missing.json()["error"]
    assert error["code"] == "NOT_FOUND"
    assert error["details"] == {"entity": "member", "id": "nope"}


@pytest.mark.asyncio
async def test_patch_member_is_partial(client, session) -> None:
    await seed_demo_accounts(session)
    response = await client.patch("/v1/members/2", json={"phone": "(555) 000-1111"})
    assert response.status_code == 200
    member = response.json()["data"]
    assert member["phone"] == "(555) 000-1111"
    assert member["email"] == "emily.davis@email.com"

    unknown = await client.patch("/v1/members/2", json={"nickname": "Em"})
    assert unknown.status_code == 422
    assert unknown.json()["error"]["code"] == "REQUEST_VALIDATION_ERROR"

    bad_email = await client.patch("/v1/members/2", json={"email": "not-an-email"})
    assert bad_email.status_code == 422
    assert bad_email.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_suspend_member_with_and_without_body(client, session) -> None:
    await seed_demo_accounts(session)
    response = await client.post("/v1/members/1/suspend", json={"pauseSubscriptions": True})
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "suspended"
    assert response.json()["data"]["pausedSubscriptions"] == 2

    bare = await client.post("/v1/members/3/suspend")
    assert bare.status_code == 200
    assert bare.json()["data"]["pausedSubscriptions"] == 0

    cancelled = await client.post("/v1/members/5/suspend")
    assert cancelled.status_code == 422


@pytest.mark.asyncio
async def test_vehicle_routes(client, session) -> None:
    await seed_demo_accounts(session)
    created = await client.post(
        "/v1/members/5/vehicles",
        json={"make": "Mazda", "model": "CX-5", "year": 2022, "licensePlate": "mzd-222"},
    )
    assert created.status_code == 201
    vehicle = created.json()["data"]
    assert vehicle["licensePlate"] == "MZD-222"
    assert vehicle["memberId"] == "5"

    listed = await client.get("/v1/members/5/vehicles")
    assert [item["id"] for item in listed.json()["data"]] == [vehicle["id"]]

    too_old = await client.post(
        "/v1/members/5/vehicles",
        json={"make": "Ford", "model": "Model T", "year": 1925, "licensePlate": "OLD-001"},
    )
    assert too_old.status_code == 422


@pytest.mark.asyncio
async def test_subscription_list_and_patch(client, session) -> None:
    await seed_demo_accounts(session)
    listed = await client.get(
        "/v1/subscriptions", params={"planName": "Premium Wash", "sort": "-amount"}
    )
    page = listed.json()["data"]
    assert page["total"] == 3
    assert page["data"][0]["member"]["id"] in {"1", "2", "4"}
    assert page["data"][0]["vehicle"]["id"] == page["data"][0]["vehicleId"]

    patched = await client.patch("/v1/subscriptions/sub1", json={"amount": 24.99})
    assert patched.status_code == 200
    assert patched.json()["data"]["amount"] == pytest.approx(24.99)
    assert patched.json()["data"]["planName"] == "Premium Wash"

    illegal = await client.patch("/v1/subscriptions/sub5", json={"status": "active"})
    assert illegal.status_code == 422
    assert illegal.json()["error"]["details"]["current"] == "cancelled"


@pytest.mark.asyncio
async def test_lifecycle_action_routes(client, session) -> None:
    await seed_demo_accounts(session)
    paused = await client.post("/v1/subscriptions/sub1/pause")
    assert paused.status_code == 200
    assert paused.json()["data"]["status"] == "paused"

    resumed = await client.post("/v1/subscriptions/sub1/resume")
    assert resumed.json()["data"]["status"] == "active"

    recovered = await client.post("/v1/subscriptions/sub3/recover")
    assert recovered.json()["data"]["status"] == "active"

    cancelled = await client.post("/v1/subscriptions/sub2/cancel")
    assert cancelled.json()["data"]["status"] == "cancelled"
    assert cancelled.json()["data"]["endDate"] is not None

    again = await client.post("/v1/subscriptions/sub2/resume")
    assert again.status_code == 422

    unknown = await client.post("/v1/subscriptions/sub1/explode")
    assert unknown.status_code == 422
    assert unknown.json()["error"]["code"] == "REQUEST_VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_transfer_and_reactivate_routes(client, session) -> None:
    await seed_demo_accounts(session)
    missing_reason = await client.post(
        "/v1/subscriptions/sub1/transfer", json={"toVehicleId": "veh2"}
    )
    assert missing_reason.status_code == 422
    assert missing_reason.json()["error"]["code"] == "REQUEST_VALIDATION_ERROR"

    created = await client.post(
        "/v1/members/1/vehicles",
        json={"make": "Kia", "model": "EV6", "year": 2023, "licensePlate": "KIA-606"},
    )
    vehicle_id = created.json()["data"]["id"]
    moved = await client.post(
        "/v1/subscriptions/sub1/transfer",
        json={"toVehicleId": vehicle_id, "reason": "Traded in the BMW"},
    )
    assert moved.status_code == 200
    assert moved.json()["data"]["vehicleId"] == vehicle_id

    reactivated = await client.post("/v1/subscriptions/sub5/reactivate")
    assert reactivated.status_code == 201
    fresh = reactivated.json()["data"]
    assert fresh["id"] != "sub5"
    assert fresh["status"] == "active"
    assert fresh["vehicleId"] == "veh5"

    not_cancelled = await client.post("/v1/subscriptions/sub2/reactivate")
    assert not_cancelled.status_code == 422


@pytest.mark.asyncio
async def test_support_ticket_routes(client, session) -> None:
    await seed_demo_accounts(session)
    created = await client.post(
        "/v1/support/tickets",
        json={
            "memberId": "3",
            "subject": "Paused plan still charged",
            "description": "Charged while paused",
            "category": "billing",
        },
    )
    assert created.status_code == 201
    ticket = created.json()["data"]
    assert ticket["assignedTo"] == "Billing Team"
    assert ticket["member"]["name"] == "Michael Johnson"

    listed = await client.get(
        "/v1/support/tickets", params={"status": "all", "category": "billing"}
    )
    assert [item["id"] for item in listed.json()["data"]] == [ticket["id"]]

    bad_priority = await client.get("/v1/support/tickets", params={"priority": "urgent"})
    assert bad_priority.status_code == 422


@pytest.mark.asyncio
async def test_dashboard_routes(client, session) -> None:
    await seed_demo_accounts(session)
    metrics = await client.get("/v1/dashboard/metrics")
    assert metrics.status_code == 200
    data = metrics.json()["data"]
    assert data["totalMembers"] == 5
    assert data["monthlyRevenue"] == pytest.approx(49.98)
    assert data["revenueGrowth"]["trend"] == "stable"

    summary = await client.get("/v1/dashboard/summary")
    body = summary.json()["data"]
    cards = {card["id"]: card for card in body["cards"]}
    assert cards["monthly_revenue"]["value"] == "$49.98"
    assert cards["overdue"]["value"] == "1"
    assert [alert["id"] for alert in body["alerts"]] == [
        "overdue-subscriptions",
        "inactive-members",
    ]


@pytest.mark.asyncio
async def test_health_reports_store_and_requests(client) -> None:
    await client.get("/v1/members")
    response = await client.get("/v1/health")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "ok"
    assert data["database"] == "ok"
    assert data["requests"]["count"] >= 1
    assert "members.list" in data["store"]
    assert set(data["pool"]) == {"size", "checkedout", "checkedin", "overflow"}


@pytest.mark.asyncio
async def test_timeout_header_must_be_positive(client) -> None:
    response = await client.get("/v1/members", headers={"X-Timeout-Ms": "0"})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "REQUEST_VALIDATION_ERROR"
    accepted = await client.get("/v1/members", headers={"X-Timeout-Ms": "250"})
    assert accepted.status_code == 200


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(client) -> None:
    response = await client.get("/v1/nowhere")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
    assert "request_id" in response.json()["meta"]
