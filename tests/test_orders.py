"""Order creation, editing, status workflow and promotions."""

import re
from datetime import date, datetime, timedelta
from decimal import Decimal

from sqlalchemy import select

from conftest import auth
from restaurant_pos.models import (
    DiscountType,
    OrderNotification,
    Promotion,
    TargetRole,
    TaxSetting,
    TaxType,
)


async def create_order(client, headers, table, menu, **extra):
    payload = {
        "table_id": table.id,
        "items": [
            {"menu_item_id": menu["burger"].id, "quantity": 2},
            {"menu_item_id": menu["fries"].id, "quantity": 1, "special_instructions": "Extra salt"},
        ],
        **extra,
    }
    return await client.post("/orders", json=payload, headers=headers)


async def table_status(client, headers, table_id):
    response = await client.get(f"/tables/{table_id}", headers=headers)
    return response.json()["props"]["table"]["status"]


async def test_create_order_computes_totals_and_occupies_table(client, staff_headers, table, menu):
    response = await create_order(client, staff_headers, table, menu)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    order = body["order"]
    assert re.fullmatch(rf"ORD-{date.today():%Y%m%d}-\d{{4}}", order["order_number"])
    assert order["status"] == "pending"
    assert Decimal(order["subtotal"]) == Decimal("24.50")
    # No tax rule configured: the default 10% applies
    assert Decimal(order["tax_amount"]) == Decimal("2.45")
    assert Decimal(order["total_amount"]) == Decimal("26.95")
    assert order["item_count"] == 3
    assert [line["name"] for line in order["items"]] == ["Burger", "Fries"]
    assert await table_status(client, staff_headers, table.id) == "occupied"


async def test_create_order_alerts_kitchen_and_reception(client, staff_headers, table, menu, session_maker):
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]

    async with session_maker() as session:
        alerts = (
            await session.execute(select(OrderNotification).where(OrderNotification.order_id == order["id"]))
        ).scalars().all()
    assert {a.target_role for a in alerts} == {TargetRole.KITCHEN, TargetRole.RECEPTION}


async def test_active_tax_rule_drives_totals(client, staff_headers, table, menu, db):
    db.add(TaxSetting(name="VAT", type=TaxType.MANUAL, tax_rate=Decimal("20.00"), is_active=True))
    await db.commit()

    order = (await create_order(client, staff_headers, table, menu)).json()["order"]

    assert Decimal(order["tax_amount"]) == Decimal("4.90")
    assert Decimal(order["total_amount"]) == Decimal("29.40")


async def test_free_tax_rule_means_no_tax(client, staff_headers, table, menu, db):
    db.add(TaxSetting(name="Tax holiday", type=TaxType.FREE, is_active=True))
    await db.commit()

    order = (await create_order(client, staff_headers, table, menu)).json()["order"]

    assert Decimal(order["tax_amount"]) == Decimal("0")
    assert Decimal(order["total_amount"]) == Decimal("24.50")


async def test_second_active_order_on_table_conflicts(client, staff_headers, table, menu):
    await create_order(client, staff_headers, table, menu)

    response = await create_order(client, staff_headers, table, menu)

    assert response.status_code == 409
    assert response.json()["success"] is False
    assert response.json()["error"] == "conflict"


async def test_unavailable_item_is_rejected(client, staff_headers, table, menu, db):
    menu["fries"].is_available = False
    await db.commit()

    response = await create_order(client, staff_headers, table, menu)

    assert response.status_code == 422
    assert "Fries" in response.json()["detail"]


async def test_unknown_menu_item_is_not_found(client, staff_headers, table):
    response = await client.post(
        "/orders",
        json={"table_id": table.id, "items": [{"menu_item_id": 999, "quantity": 1}]},
        headers=staff_headers,
    )
    assert response.status_code == 404


async def test_order_requires_staff_role(client, cook, table, menu):
    response = await create_order(client, auth(cook), table, menu)
    assert response.status_code == 403


async def test_anonymous_requests_are_rejected(client, table, menu):
    response = await client.get("/orders")
    assert response.status_code == 401


async def test_update_items_recalculates(client, staff_headers, table, menu):
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]

    response = await client.put(
        f"/orders/{order['id']}",
        json={"items": [{"menu_item_id": menu["soda"].id, "quantity": 3}], "priority": "high"},
        headers=staff_headers,
    )

    assert response.status_code == 200
    updated = response.json()["order"]
    assert Decimal(updated["subtotal"]) == Decimal("6.00")
    assert Decimal(updated["total_amount"]) == Decimal("6.60")
    assert updated["priority"] == "high"
    assert [line["name"] for line in updated["items"]] == ["Soda"]


async def test_items_are_locked_once_preparing(client, staff_headers, table, menu):
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]
    await client.patch(f"/orders/{order['id']}/status", json={"status": "preparing"}, headers=staff_headers)

    response = await client.put(
        f"/orders/{order['id']}",
        json={"items": [{"menu_item_id": menu["soda"].id, "quantity": 1}]},
        headers=staff_headers,
    )
    assert response.status_code == 422


async def test_status_workflow_stamps_times_and_frees_table(client, staff_headers, table, menu):
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]
    url = f"/orders/{order['id']}/status"

    ready = (await client.patch(url, json={"status": "ready"}, headers=staff_headers)).json()["order"]
    assert ready["ready_time"] is not None
    assert await table_status(client, staff_headers, table.id) == "occupied"

    served = (await client.patch(url, json={"status": "served"}, headers=staff_headers)).json()["order"]
    assert served["served_time"] is not None

    done = await client.patch(url, json={"status": "completed"}, headers=staff_headers)
    assert done.json()["message"] == "Order status updated to completed"
    assert await table_status(client, staff_headers, table.id) == "available"


async def test_cancel_frees_table(client, staff_headers, table, menu):
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]

    await client.patch(f"/orders/{order['id']}/status", json={"status": "cancelled"}, headers=staff_headers)

    assert await table_status(client, staff_headers, table.id) == "available"


async def test_delete_order_frees_table(client, staff_headers, table, menu):
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]

    response = await client.delete(f"/orders/{order['id']}", headers=staff_headers)

    assert response.status_code == 200
    assert (await client.get(f"/orders/{order['id']}", headers=staff_headers)).status_code == 404
    assert await table_status(client, staff_headers, table.id) == "available"


async def test_orders_index_is_a_page_envelope(client, staff_headers, staff, table, menu):
    await create_order(client, staff_headers, table, menu)

    response = await client.get("/orders?status=pending", headers=staff_headers)

    page = response.json()
    assert page["component"] == "Orders/Index"
    assert page["url"] == "/orders?status=pending"
    assert page["props"]["auth"]["user"]["id"] == staff.id
    assert page["props"]["tax"]["active"] is None
    assert page["props"]["pagination"]["total"] == 1
    assert page["props"]["filters"]["status"] == "pending"
    assert len(page["props"]["orders"]) == 1


async def test_show_order_page_includes_bill_and_payments(client, staff_headers, table, menu):
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]

    page = (await client.get(f"/orders/{order['id']}", headers=staff_headers)).json()

    assert page["component"] == "Orders/Show"
    assert page["props"]["order"]["id"] == order["id"]
    assert page["props"]["bill"] is None
    assert page["props"]["payments"] == []


# =============================================================================
# PROMOTIONS
# =============================================================================

def _promotion(**overrides) -> Promotion:
    now = datetime.now()
    fields = dict(
        name="HAPPYHOUR",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10.00"),
        start_time=now - timedelta(hours=1),
        end_time=now + timedelta(hours=1),
        is_active=True,
        usage_count=0,
    )
    fields.update(overrides)
    return Promotion(**fields)


async def test_percentage_promotion_discounts_total(client, staff_headers, table, menu, db):
    db.add(_promotion())
    await db.commit()
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]

    response = await client.post(
        f"/orders/{order['id']}/promotion", json={"code": "HAPPYHOUR"}, headers=staff_headers
    )

    assert response.status_code == 200
    discounted = response.json()["order"]
    assert Decimal(discounted["discount_amount"]) == Decimal("2.45")
    assert Decimal(discounted["total_amount"]) == Decimal("24.50")


async def test_fixed_promotion_never_exceeds_subtotal(client, staff_headers, table, menu, db):
    db.add(_promotion(name="BIGDEAL", discount_type=DiscountType.FIXED_AMOUNT, discount_value=Decimal("500.00")))
    await db.commit()
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]

    discounted = (
        await client.post(f"/orders/{order['id']}/promotion", json={"code": "BIGDEAL"}, headers=staff_headers)
    ).json()["order"]

    assert Decimal(discounted["discount_amount"]) == Decimal("24.50")
    assert Decimal(discounted["total_amount"]) == Decimal("2.45")


async def test_expired_or_exhausted_promotions_are_refused(client, staff_headers, table, menu, db):
    now = datetime.now()
    db.add(_promotion(name="OLD", start_time=now - timedelta(days=2), end_time=now - timedelta(days=1)))
    db.add(_promotion(name="USEDUP", usage_limit=1, usage_count=1))
    await db.commit()
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]

    for code in ("OLD", "USEDUP"):
        response = await client.post(f"/orders/{order['id']}/promotion", json={"code": code}, headers=staff_headers)
        assert response.status_code == 422

    missing = await client.post(f"/orders/{order['id']}/promotion", json={"code": "NOPE"}, headers=staff_headers)
    assert missing.status_code == 404


async def test_promotion_minimum_order(client, staff_headers, table, menu, db):
    db.add(_promotion(name="BIGSPENDER", minimum_order_amount=Decimal("100.00")))
    await db.commit()
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]

    response = await client.post(
        f"/orders/{order['id']}/promotion", json={"code": "BIGSPENDER"}, headers=staff_headers
    )
    assert response.status_code == 422


async def test_reapplying_a_promotion_counts_one_use(client, staff_headers, table, menu, db, session_maker):
    db.add(_promotion())
    await db.commit()
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]

    for _ in range(2):
        response = await client.post(
            f"/orders/{order['id']}/promotion", json={"code": "HAPPYHOUR"}, headers=staff_headers
        )
        assert response.status_code == 200

    async with session_maker() as session:
        used = await session.scalar(select(Promotion.usage_count).where(Promotion.name == "HAPPYHOUR"))
    assert used == 1


async def test_billed_order_is_locked(client, staff_headers, table, menu, db):
    db.add(_promotion())
    await db.commit()
    order = (await create_order(client, staff_headers, table, menu)).json()["order"]
    bill = (await client.post(f"/orders/{order['id']}/generate-bill", headers=staff_headers)).json()["bill"]

    edited = await client.put(
        f"/orders/{order['id']}",
        json={"items": [{"menu_item_id": menu["soda"].id, "quantity": 5}]},
        headers=staff_headers,
    )
    discounted = await client.post(
        f"/orders/{order['id']}/promotion", json={"code": "HAPPYHOUR"}, headers=staff_headers
    )
    noted = await client.put(
        f"/orders/{order['id']}", json={"special_instructions": "Window seat"}, headers=staff_headers
    )

    assert edited.status_code == 422
    assert bill["bill_number"] in edited.json()["detail"]
    assert discounted.status_code == 422
    assert noted.status_code == 200
    assert Decimal(noted.json()["order"]["total_amount"]) == Decimal("26.95")
