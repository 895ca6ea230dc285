"""Bill generation, instalments, card declines, split settlement and receipts."""

import re
from datetime import date
from decimal import Decimal

import pytest_asyncio

from conftest import auth, make_user
from restaurant_pos.models import UserRole


@pytest_asyncio.fixture
async def order(client, staff_headers, table, menu, customer):
    """2 x Burger + 1 x Fries for the registered customer: 24.50 + 2.45 tax."""
    response = await client.post(
        "/orders",
        json={
            "table_id": table.id,
            "customer_id": customer.id,
            "items": [
                {"menu_item_id": menu["burger"].id, "quantity": 2},
                {"menu_item_id": menu["fries"].id, "quantity": 1},
            ],
        },
        headers=staff_headers,
    )
    return response.json()["order"]


@pytest_asyncio.fixture
async def bill(client, staff_headers, order):
    response = await client.post(f"/orders/{order['id']}/generate-bill", headers=staff_headers)
    return response.json()["bill"]


async def pay(client, headers, bill_id, amount, method="cash", token=None):
    payload = {"amount": amount, "payment_method": method}
    if token:
        payload["payment_method_token"] = token
    return await client.post(f"/bills/{bill_id}/payment", json=payload, headers=headers)


async def test_generated_bill_adds_service_charge(bill, order):
    assert re.fullmatch(rf"BILL-{date.today():%Y%m%d}-\d{{4}}", bill["bill_number"])
    assert bill["order_number"] == order["order_number"]
    assert Decimal(bill["subtotal"]) == Decimal("24.50")
    assert Decimal(bill["tax_amount"]) == Decimal("2.45")
    assert Decimal(bill["service_charge"]) == Decimal("2.45")
    assert Decimal(bill["total_amount"]) == Decimal("29.40")
    assert bill["payment_status"] == "pending"
    assert Decimal(bill["remaining_amount"]) == Decimal("29.40")


async def test_one_bill_per_order(client, staff_headers, bill, order):
    response = await client.post(f"/orders/{order['id']}/generate-bill", headers=staff_headers)
    assert response.status_code == 409


async def test_cancelled_order_cannot_be_billed(client, staff_headers, order):
    await client.patch(f"/orders/{order['id']}/status", json={"status": "cancelled"}, headers=staff_headers)

    response = await client.post(f"/orders/{order['id']}/generate-bill", headers=staff_headers)
    assert response.status_code == 422


async def test_partial_then_full_payment(client, staff_headers, bill, notifier):
    first = await pay(client, staff_headers, bill["id"], "10.00")

    assert first.status_code == 200
    body = first.json()
    assert body["message"] == "Partial payment recorded"
    assert body["bill"]["payment_status"] == "partial"
    assert Decimal(body["bill"]["remaining_amount"]) == Decimal("19.40")
    assert body["points_earned"] == 0
    assert notifier.outbox == []

    second = (await pay(client, staff_headers, bill["id"], "19.40", method="card", token="tok_visa")).json()

    assert second["message"] == "Bill paid in full"
    assert second["bill"]["payment_status"] == "paid"
    assert second["bill"]["paid_time"] is not None
    assert second["payment"]["payment_gateway"] == "mock"
    assert second["payment"]["transaction_id"].startswith("pi_mock_")
    # Standard tier: one point per whole unit of the bill total
    assert second["points_earned"] == 29


async def test_paid_bill_sends_receipt_and_credits_loyalty(client, staff_headers, bill, customer, notifier):
    await pay(client, staff_headers, bill["id"], "29.40")

    receipts = {(m["channel"], m["to"]) for m in notifier.outbox}
    assert receipts == {("sms", "555-000-1111"), ("email", "guest@test.com")}
    assert "29 loyalty points" in notifier.outbox[0]["body"]

    account = (await client.get(f"/loyalty/{customer.id}", headers=staff_headers)).json()
    assert account["points_balance"] == 29
    assert account["visits_count"] == 1
    assert Decimal(account["total_spent"]) == Decimal("29.40")
    assert account["tier"] == "Standard"


async def test_overpayment_is_refused(client, staff_headers, bill):
    await pay(client, staff_headers, bill["id"], "10.00")

    response = await pay(client, staff_headers, bill["id"], "20.00")

    assert response.status_code == 422
    assert "19.40" in response.json()["detail"]


async def test_declined_card_leaves_bill_untouched(client, staff_headers, bill, order, payments):
    response = await pay(client, staff_headers, bill["id"], "29.40", method="card", token="tok_decline")

    assert response.status_code == 422
    assert response.json()["detail"].startswith("Payment declined")
    assert payments.charges == []
    page = (await client.get(f"/bills/{bill['id']}", headers=staff_headers)).json()
    assert page["props"]["bill"]["payment_status"] == "pending"
    assert page["props"]["payments"] == []


async def test_paying_a_paid_bill_is_refused(client, staff_headers, bill):
    await pay(client, staff_headers, bill["id"], "29.40")

    response = await pay(client, staff_headers, bill["id"], "1.00")
    assert response.status_code == 422


async def test_split_payment_settles_bill(client, staff_headers, bill, order, notifier):
    response = await client.post(
        f"/orders/{order['id']}/split-payment",
        json={"splits": [
            {"amount": "14.70", "payment_method": "cash", "customer_name": "Ann"},
            {"amount": "14.70", "payment_method": "card", "customer_name": "Ben"},
        ]},
        headers=staff_headers,
    )

    assert response.status_code == 200
    recorded = response.json()["payments"]
    assert [p["payment_gateway"] for p in recorded] == ["split", "split"]

    page = (await client.get(f"/bills/{bill['id']}", headers=staff_headers)).json()
    assert page["props"]["bill"]["payment_status"] == "paid"
    assert page["props"]["bill"]["payment_method"] == "other"
    assert len(page["props"]["payments"]) == 2
    assert notifier.outbox


async def test_split_must_add_up(client, staff_headers, bill, order):
    response = await client.post(
        f"/orders/{order['id']}/split-payment",
        json={"splits": [
            {"amount": "10.00", "payment_method": "cash"},
            {"amount": "10.00", "payment_method": "cash"},
        ]},
        headers=staff_headers,
    )
    assert response.status_code == 422


async def test_split_without_bill_uses_order_total(client, staff_headers, order):
    response = await client.post(
        f"/orders/{order['id']}/split-payment",
        json={"splits": [
            {"amount": "13.47", "payment_method": "cash"},
            {"amount": "13.48", "payment_method": "upi"},
        ]},
        headers=staff_headers,
    )

    assert response.status_code == 200
    listed = (await client.get(f"/orders/{order['id']}/payments", headers=staff_headers)).json()
    assert sum(Decimal(p["amount"]) for p in listed) == Decimal("26.95")


async def split(client, headers, order_id, *amounts):
    parts = [{"amount": amount, "payment_method": "cash"} for amount in amounts]
    return await client.post(f"/orders/{order_id}/split-payment", json={"splits": parts}, headers=headers)


async def test_split_covers_only_the_remaining_balance(client, staff_headers, bill, order):
    await pay(client, staff_headers, bill["id"], "10.00")

    full_total = await split(client, staff_headers, order["id"], "14.70", "14.70")
    assert full_total.status_code == 422
    assert "19.40" in full_total.json()["detail"]

    remaining = await split(client, staff_headers, order["id"], "9.70", "9.70")
    assert remaining.status_code == 200

    page = (await client.get(f"/bills/{bill['id']}", headers=staff_headers)).json()
    assert page["props"]["bill"]["payment_status"] == "paid"
    assert Decimal(page["props"]["bill"]["paid_amount"]) == Decimal("29.40")
    assert sum(Decimal(p["amount"]) for p in page["props"]["payments"]) == Decimal("29.40")


async def test_split_without_bill_cannot_be_repeated(client, staff_headers, order):
    first = await split(client, staff_headers, order["id"], "13.47", "13.48")
    again = await split(client, staff_headers, order["id"], "13.47", "13.48")

    assert first.status_code == 200
    assert again.status_code == 422
    listed = (await client.get(f"/orders/{order['id']}/payments", headers=staff_headers)).json()
    assert len(listed) == 2


async def test_manual_bill_correction_marks_paid(client, staff_headers, bill, customer):
    response = await client.put(
        f"/bills/{bill['id']}",
        json={"payment_status": "paid", "payment_method": "cash", "paid_amount": "29.40", "notes": "Paid at bar"},
        headers=staff_headers,
    )

    updated = response.json()["bill"]
    assert updated["payment_status"] == "paid"
    assert updated["notes"] == "Paid at bar"
    account = (await client.get(f"/loyalty/{customer.id}", headers=staff_headers)).json()
    assert account["points_balance"] == 29


async def test_bills_index_lists_only_own_orders(client, staff_headers, bill, db):
    other = await make_user(db, "Other Desk", "other@test.com", UserRole.STAFF)

    mine = (await client.get("/bills", headers=staff_headers)).json()
    theirs = (await client.get("/bills", headers=auth(other))).json()

    assert mine["component"] == "Bills/Index"
    assert [b["id"] for b in mine["props"]["bills"]] == [bill["id"]]
    assert theirs["props"]["bills"] == []


async def test_bill_detail_embeds_order(client, staff_headers, bill, order):
    page = (await client.get(f"/bills/{bill['id']}", headers=staff_headers)).json()

    assert page["component"] == "Bills/Show"
    assert page["props"]["bill"]["order"]["id"] == order["id"]
    assert len(page["props"]["bill"]["order"]["items"]) == 2


async def test_refund_reverses_card_charge(client, staff_headers, bill, order, payments):
    await pay(client, staff_headers, bill["id"], "10.00")
    await pay(client, staff_headers, bill["id"], "19.40", method="card", token="tok_visa")

    response = await client.post(
        f"/bills/{bill['id']}/refund", json={"reason": "Cold food"}, headers=staff_headers
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Bill refunded"
    assert body["bill"]["payment_status"] == "refunded"
    assert body["bill"]["notes"].endswith("Cold food")
    assert [p["status"] for p in body["payments"]] == ["refunded", "refunded"]
    assert len(payments.charges) == 1

    listed = (await client.get(f"/orders/{order['id']}/payments", headers=staff_headers)).json()
    assert {p["status"] for p in listed} == {"refunded"}


async def test_refunded_bill_takes_no_more_payments(client, staff_headers, bill):
    await pay(client, staff_headers, bill["id"], "29.40")
    await client.post(f"/bills/{bill['id']}/refund", json={}, headers=staff_headers)

    again = await client.post(f"/bills/{bill['id']}/refund", json={}, headers=staff_headers)
    payment = await pay(client, staff_headers, bill["id"], "1.00")

    assert again.status_code == 422
    assert payment.status_code == 422


async def test_unpaid_bill_cannot_be_refunded(client, staff_headers, bill):
    response = await client.post(f"/bills/{bill['id']}/refund", json={}, headers=staff_headers)

    assert response.status_code == 422
    assert "nothing to refund" in response.json()["detail"]
