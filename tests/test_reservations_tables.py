"""Reservations, table management and the front-of-house dashboard."""

import hashlib
from datetime import datetime, timedelta

import pytest

from conftest import auth


@pytest.fixture
def evening():
    tomorrow = datetime.now() + timedelta(days=1)
    return tomorrow.replace(hour=19, minute=0, second=0, microsecond=0)


def booking(table, when, **overrides):
    payload = {
        "table_id": table.id,
        "customer_name": "Jane Doe",
        "customer_email": "Jane@Example.com",
        "customer_phone": "555-123-4567",
        "party_size": 3,
        "reservation_date": when.isoformat(),
    }
    payload.update(overrides)
    return payload


async def reserve(client, headers, table, when, **overrides):
    return await client.post("/reservations", json=booking(table, when, **overrides), headers=headers)


async def test_reservation_gets_confirmation_code_and_message(client, staff_headers, table, evening, notifier):
    response = await reserve(client, staff_headers, table, evening)

    assert response.status_code == 201
    reservation = response.json()["reservation"]
    expected = hashlib.md5(f"{reservation['id']}jane@example.com".encode()).hexdigest()[:8].upper()
    assert reservation["confirmation_code"] == expected
    assert reservation["customer_email"] == "jane@example.com"
    assert reservation["status"] == "pending"
    assert reservation["end_time"] == (evening + timedelta(minutes=120)).isoformat()
    assert reservation["table_number"] == "T2"
    assert {m["channel"] for m in notifier.outbox} == {"sms", "email"}
    assert all(expected in m["body"] for m in notifier.outbox)


async def test_overlapping_booking_conflicts(client, staff_headers, table, evening):
    await reserve(client, staff_headers, table, evening)

    clash = await reserve(client, staff_headers, table, evening + timedelta(minutes=60))
    later = await reserve(client, staff_headers, table, evening + timedelta(minutes=150))

    assert clash.status_code == 409
    assert later.status_code == 201


async def test_booking_starting_as_another_ends_conflicts(client, staff_headers, table, evening):
    await reserve(client, staff_headers, table, evening)

    back_to_back = await reserve(client, staff_headers, table, evening + timedelta(minutes=120))

    assert back_to_back.status_code == 409


async def test_enclosed_booking_conflicts(client, staff_headers, table, evening):
    await reserve(client, staff_headers, table, evening)

    inside = await reserve(client, staff_headers, table, evening + timedelta(minutes=30), duration_minutes=60)

    assert inside.status_code == 409


async def test_enclosing_booking_conflicts(client, staff_headers, table, evening):
    await reserve(client, staff_headers, table, evening + timedelta(minutes=30), duration_minutes=60)

    around = await reserve(client, staff_headers, table, evening, duration_minutes=180)

    assert around.status_code == 409


async def test_cancelled_booking_frees_the_slot(client, staff_headers, table, evening):
    first = (await reserve(client, staff_headers, table, evening)).json()["reservation"]
    await client.post(f"/reservations/{first['id']}/cancel", headers=staff_headers)

    response = await reserve(client, staff_headers, table, evening)
    assert response.status_code == 201


async def test_booking_rules(client, staff_headers, table, evening):
    too_many = await reserve(client, staff_headers, table, evening, party_size=6)
    in_the_past = await reserve(client, staff_headers, table, datetime.now() - timedelta(hours=1))
    bad_email = await reserve(client, staff_headers, table, evening, customer_email="not-an-email")

    assert too_many.status_code == 422
    assert in_the_past.status_code == 422
    assert bad_email.status_code == 422


async def test_customers_may_book_but_kitchen_may_not(client, table, evening, customer, cook):
    mine = await reserve(client, auth(customer), table, evening)
    assert mine.status_code == 201
    assert mine.json()["reservation"]["user_id"] == customer.id

    refused = await reserve(client, auth(cook), table, evening + timedelta(hours=3))
    assert refused.status_code == 403


async def test_availability_skips_booked_and_small_tables(client, staff_headers, tables, table, evening):
    await reserve(client, staff_headers, table, evening)

    response = await client.get(
        "/reservations/availability",
        params={"date": evening.isoformat(), "party_size": 3},
        headers=staff_headers,
    )

    assert [t["table_number"] for t in response.json()["tables"]] == ["T3"]


async def test_confirm_and_cancel_transitions(client, staff_headers, table, evening):
    reservation = (await reserve(client, staff_headers, table, evening)).json()["reservation"]
    base = f"/reservations/{reservation['id']}"

    confirmed = (await client.post(f"{base}/confirm", headers=staff_headers)).json()["reservation"]
    assert confirmed["status"] == "confirmed"
    assert confirmed["confirmed_at"] is not None
    assert (await client.post(f"{base}/confirm", headers=staff_headers)).status_code == 422

    cancelled = (await client.post(f"{base}/cancel", headers=staff_headers)).json()["reservation"]
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancelled_at"] is not None
    assert (await client.post(f"{base}/cancel", headers=staff_headers)).status_code == 422


async def test_moving_a_booking_checks_the_new_slot(client, staff_headers, tables, evening):
    t2, t3 = tables[1], tables[2]
    await reserve(client, staff_headers, t3, evening, customer_name="Other Party")
    moving = (await reserve(client, staff_headers, t2, evening)).json()["reservation"]

    clash = await client.put(f"/reservations/{moving['id']}", json={"table_id": t3.id}, headers=staff_headers)
    assert clash.status_code == 409

    moved = await client.put(
        f"/reservations/{moving['id']}",
        json={"reservation_date": (evening + timedelta(hours=3)).isoformat(), "party_size": 4},
        headers=staff_headers,
    )
    body = moved.json()["reservation"]
    assert body["party_size"] == 4
    assert body["end_time"] == (evening + timedelta(hours=5)).isoformat()


async def test_reservations_index_and_show(client, staff_headers, table, evening):
    reservation = (await reserve(client, staff_headers, table, evening)).json()["reservation"]

    index = (await client.get("/reservations?status=pending", headers=staff_headers)).json()
    show = (await client.get(f"/reservations/{reservation['id']}", headers=staff_headers)).json()

    assert index["component"] == "Reservations/Index"
    assert [r["id"] for r in index["props"]["reservations"]] == [reservation["id"]]
    assert show["component"] == "Reservations/Show"
    assert show["props"]["reservation"]["can_be_cancelled"] is True


# =============================================================================
# TABLES
# =============================================================================

async def test_create_table_and_reject_duplicate_number(client, staff_headers, tables):
    created = await client.post(
        "/tables",
        json={"table_number": "T9", "capacity": 8, "min_capacity": 2, "location": "Patio"},
        headers=staff_headers,
    )
    duplicate = await client.post("/tables", json={"table_number": "T1", "capacity": 2}, headers=staff_headers)
    inverted = await client.post(
        "/tables", json={"table_number": "T10", "capacity": 2, "min_capacity": 4}, headers=staff_headers
    )

    assert created.status_code == 201
    assert created.json()["table"]["is_available"] is True
    assert duplicate.status_code == 409
    assert inverted.status_code == 422


async def test_table_types(client, staff_headers):
    created = await client.post(
        "/tables/types", json={"name": "Terrace", "price_multiplier": "1.10"}, headers=staff_headers
    )
    assert created.status_code == 201

    table = await client.post(
        "/tables",
        json={"table_number": "P1", "capacity": 4, "table_type_id": created.json()["table_type"]["id"]},
        headers=staff_headers,
    )
    assert table.json()["table"]["table_type_name"] == "Terrace"

    missing_type = await client.post(
        "/tables", json={"table_number": "P2", "capacity": 4, "table_type_id": 999}, headers=staff_headers
    )
    assert missing_type.status_code == 404


async def test_table_with_booking_cannot_be_deleted(client, staff_headers, table, evening):
    await reserve(client, staff_headers, table, evening)

    response = await client.delete(f"/tables/{table.id}", headers=staff_headers)
    assert response.status_code == 422


async def test_table_with_active_order_cannot_be_deleted(client, staff_headers, table, menu):
    await client.post(
        "/orders",
        json={"table_id": table.id, "items": [{"menu_item_id": menu["soda"].id, "quantity": 1}]},
        headers=staff_headers,
    )

    response = await client.delete(f"/tables/{table.id}", headers=staff_headers)
    assert response.status_code == 422


async def test_maintenance_table_takes_no_orders(client, staff_headers, table, menu):
    status = await client.patch(f"/tables/{table.id}/status", json={"status": "maintenance"}, headers=staff_headers)
    assert status.json()["message"] == "Table T2 is now maintenance"

    response = await client.post(
        "/orders",
        json={"table_id": table.id, "items": [{"menu_item_id": menu["soda"].id, "quantity": 1}]},
        headers=staff_headers,
    )
    assert response.status_code == 422


async def test_table_page_lists_upcoming_reservations(client, staff_headers, table, evening):
    await reserve(client, staff_headers, table, evening)

    page = (await client.get(f"/tables/{table.id}", headers=staff_headers)).json()

    assert page["component"] == "Tables/Show"
    assert len(page["props"]["table"]["upcoming_reservations"]) == 1


# =============================================================================
# DASHBOARD
# =============================================================================

async def test_dashboard_counts_tables(client, staff_headers, tables, menu):
    await client.post(
        "/orders",
        json={"table_id": tables[0].id, "items": [{"menu_item_id": menu["soda"].id, "quantity": 1}]},
        headers=staff_headers,
    )

    page = (await client.get("/dashboard", headers=staff_headers)).json()

    assert page["component"] == "Dashboard/Index"
    assert page["props"]["stats"]["total"] == 3
    assert page["props"]["stats"]["occupied"] == 1
    assert page["props"]["stats"]["available"] == 2


async def test_calendar_groups_by_hour(client, staff_headers, table, evening):
    await reserve(client, staff_headers, table, evening)

    response = await client.get(
        "/dashboard/calendar", params={"date": evening.date().isoformat()}, headers=staff_headers
    )

    body = response.json()
    assert body["date"] == evening.date().isoformat()
    assert list(body["by_hour"]) == ["19"]
    assert len(body["reservations"]) == 1


async def test_floor_plan_and_analytics(client, staff_headers, tables, table, evening):
    await reserve(client, staff_headers, table, evening)

    floor = (await client.get("/dashboard/floor-plan", headers=staff_headers)).json()
    assert [t["table_number"] for t in floor["tables"]] == ["T1", "T2", "T3"]
    assert all(t["has_active_reservation"] is False for t in floor["tables"])

    analytics = (
        await client.get(
            "/dashboard/analytics",
            params={"date_to": evening.date().isoformat()},
            headers=staff_headers,
        )
    ).json()
    assert analytics["total_reservations"] == 1
    assert analytics["total_guests"] == 3
    assert analytics["popular_hours"] == [{"hour": 19, "count": 1}]
    usage = {row["table_number"]: row["percentage"] for row in analytics["table_utilization"]}
    assert usage["T2"] == 100.0
