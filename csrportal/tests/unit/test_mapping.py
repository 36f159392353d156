from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from csrportal.domain.models import Vehicle
from csrportal.persistence.mapping import (
    as_utc,
    member_summary,
    row_to_payload,
    serialize_value,
    to_camel,
    to_snake,
    to_store_fields,
    transform_keys,
)


def test_name_conversion_both_directions() -> None:
    assert to_camel("license_plate") == "licensePlate"
    assert to_camel("next_billing_date") == "nextBillingDate"
    assert to_camel("id") == "id"
    assert to_snake("licensePlate") == "license_plate"
    assert to_snake("nextBillingDate") == "next_billing_date"
    assert to_snake("status") == "status"


def test_serialize_value_normalizes_store_types() -> None:
    naive = datetime(2024, 1, 15, 10, 30)
    assert serialize_value(naive) == "2024-01-15T10:30:00+00:00"
    offset = datetime(2024, 1, 15, 12, 30, tzinfo=timezone(timedelta(hours=2)))
    assert serialize_value(offset) == "2024-01-15T10:30:00+00:00"
    assert serialize_value(date(2024, 2, 1)) == "2024-02-01"
    assert serialize_value(Decimal("29.99")) == 29.99
    assert serialize_value("x") == "x"
    assert as_utc(naive).tzinfo == timezone.utc


def test_transform_keys_recurses_into_nested_payloads() -> None:
    payload = {
        "member_id": "1",
        "vehicle": {"license_plate": "ABC-123", "created_at": datetime(2024, 1, 1)},
        "items": [{"plan_name": "Basic Wash", "amount": Decimal("19.99")}],
    }
    assert transform_keys(payload) == {
        "memberId": "1",
        "vehicle": {"licensePlate": "ABC-123", "createdAt": "2024-01-01T00:00:00+00:00"},
        "items": [{"planName": "Basic Wash", "amount": 19.99}],
    }


def test_to_store_fields_maps_api_names_to_columns() -> None:
    assert to_store_fields({"planName": "Basic Wash", "billingCycle": "yearly"}) == {
        "plan_name": "Basic Wash",
        "billing_cycle": "yearly",
    }


def test_row_to_payload_uses_mapped_columns() -> None:
    vehicle = Vehicle(
        id="veh1",
        member_id="1",
        make="BMW",
        model="X5",
        year=2022,
        license_plate="ABC-123",
        color=None,
    )
    payload = row_to_payload(vehicle, exclude=("created_at", "updated_at"))
    assert payload == {
        "id": "veh1",
        "memberId": "1",
        "make": "BMW",
        "model": "X5",
        "year": 2022,
        "licensePlate": "ABC-123",
        "color": None,
    }


def test_member_summary_is_camel_cased_snapshot() -> None:
    class _Member:
        id = "1"
        name = "John Smith"
        email = "john.smith@email.com"
        phone = None
        status = "active"

    assert member_summary(_Member()) == {
        "id": "1",
        "name": "John Smith",
        "email": "john.smith@email.com",
        "phone": None,
        "status": "active",
    }
