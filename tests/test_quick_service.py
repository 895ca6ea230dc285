"""Walk-in bookings and the per-table quick-service flow."""

from decimal import Decimal


async def get_table(client, headers, table_id):
    response = await client.get(f"/tables/{table_id}", headers=headers)
    return response.json()["props"]["table"]


async def add(client, headers, table_id, *lines):
    return await client.post(f"/quick-service/tables/{table_id}/items", json={"items": list(lines)}, headers=headers)


async def test_book_walk_in_reserves_table(client, staff_headers, table):
    response = await client.post(
        f"/quick-service/tables/{table.id}/book",
        json={"customer_name": "Sam", "customer_phone": "555-123-4567", "party_size": 3},
        headers=staff_headers,
    )

    assert response.status_code == 200
    order = response.json()["order"]
    assert order["customer_name"] == "Sam"
    assert order["items"] == []
    assert order["status"] == "pending"
    floor_table = await get_table(client, staff_headers, table.id)
    assert floor_table["status"] == "reserved"
    assert floor_table["has_active_order"] is True


async def test_party_larger_than_table_is_refused(client, staff_headers, table):
    response = await client.post(
        f"/quick-service/tables/{table.id}/book",
        json={"customer_name": "Big group", "party_size": 5},
        headers=staff_headers,
    )
    assert response.status_code == 422


async def test_booking_a_taken_table_is_refused(client, staff_headers, table):
    await client.post(f"/quick-service/tables/{table.id}/book", json={"customer_name": "Sam"}, headers=staff_headers)

    response = await client.post(
        f"/quick-service/tables/{table.id}/book", json={"customer_name": "Alex"}, headers=staff_headers
    )
    assert response.status_code == 422


async def test_release_drops_empty_booking(client, staff_headers, table):
    order = (
        await client.post(f"/quick-service/tables/{table.id}/book", json={"customer_name": "Sam"}, headers=staff_headers)
    ).json()["order"]

    response = await client.post(f"/quick-service/tables/{table.id}/release", headers=staff_headers)

    assert response.status_code == 200
    assert response.json()["table"]["status"] == "available"
    assert (await client.get(f"/orders/{order['id']}", headers=staff_headers)).status_code == 404


async def test_release_refused_once_items_are_ordered(client, staff_headers, table, menu):
    await client.post(f"/quick-service/tables/{table.id}/book", json={"customer_name": "Sam"}, headers=staff_headers)
    await add(client, staff_headers, table.id, {"menu_item_id": menu["soda"].id, "quantity": 1})

    # Adding items seats the party, so the table is no longer just reserved
    response = await client.post(f"/quick-service/tables/{table.id}/release", headers=staff_headers)
    assert response.status_code == 422


async def test_items_go_onto_the_booked_order_and_merge(client, staff_headers, table, menu):
    booked = (
        await client.post(f"/quick-service/tables/{table.id}/book", json={"customer_name": "Sam"}, headers=staff_headers)
    ).json()["order"]

    await add(client, staff_headers, table.id, {"menu_item_id": menu["burger"].id, "quantity": 1})
    response = await add(
        client, staff_headers, table.id,
        {"menu_item_id": menu["burger"].id, "quantity": 2},
        {"menu_item_id": menu["burger"].id, "quantity": 1, "special_instructions": "No pickles"},
    )

    order = response.json()["order"]
    assert order["id"] == booked["id"]
    assert [(line["name"], line["quantity"]) for line in order["items"]] == [("Burger", 3), ("Burger", 1)]
    assert Decimal(order["subtotal"]) == Decimal("40.00")
    assert (await get_table(client, staff_headers, table.id))["status"] == "occupied"


async def test_adding_items_starts_an_order_on_a_free_table(client, staff_headers, table, menu):
    response = await add(client, staff_headers, table.id, {"menu_item_id": menu["fries"].id, "quantity": 2})

    order = response.json()["order"]
    assert Decimal(order["total_amount"]) == Decimal("9.90")
    lookup = await client.get(f"/quick-service/tables/{table.id}/order", headers=staff_headers)
    assert lookup.json()["order"]["id"] == order["id"]


async def test_quantity_change_and_removal(client, staff_headers, table, menu):
    order = (
        await add(
            client, staff_headers, table.id,
            {"menu_item_id": menu["burger"].id, "quantity": 1},
            {"menu_item_id": menu["soda"].id, "quantity": 1},
        )
    ).json()["order"]
    burger_line, soda_line = order["items"]

    updated = await client.patch(
        f"/quick-service/items/{soda_line['id']}", json={"quantity": 4}, headers=staff_headers
    )
    assert Decimal(updated.json()["order"]["subtotal"]) == Decimal("18.00")

    removed = await client.delete(f"/quick-service/items/{burger_line['id']}", headers=staff_headers)
    remaining = removed.json()["order"]
    assert [line["name"] for line in remaining["items"]] == ["Soda"]
    assert Decimal(remaining["subtotal"]) == Decimal("8.00")


async def test_removing_last_line_discards_order_and_frees_table(client, staff_headers, table, menu):
    order = (await add(client, staff_headers, table.id, {"menu_item_id": menu["soda"].id, "quantity": 1})).json()["order"]

    response = await client.delete(f"/quick-service/items/{order['items'][0]['id']}", headers=staff_headers)

    assert response.status_code == 200
    assert response.json()["order"] is None
    assert (await client.get(f"/orders/{order['id']}", headers=staff_headers)).status_code == 404
    assert (await get_table(client, staff_headers, table.id))["status"] == "available"


async def test_combo_adds_priced_line_and_free_components(client, staff_headers, table, combo):
    response = await client.post(
        f"/quick-service/tables/{table.id}/combos",
        json={"combo_id": combo.id, "quantity": 2},
        headers=staff_headers,
    )

    order = response.json()["order"]
    lines = [(line["name"], line["quantity"], Decimal(line["total_price"])) for line in order["items"]]
    assert lines == [
        ("Burger Deal", 2, Decimal("22.00")),
        ("Burger", 2, Decimal("0.00")),
        ("Soda", 2, Decimal("0.00")),
    ]
    assert order["items"][1]["special_instructions"] == "Part of combo: Burger Deal"
    assert Decimal(order["subtotal"]) == Decimal("22.00")
    assert Decimal(order["total_amount"]) == Decimal("24.20")


async def test_items_never_merge_into_combo_components(client, staff_headers, table, menu, combo):
    await client.post(f"/quick-service/tables/{table.id}/combos", json={"combo_id": combo.id}, headers=staff_headers)

    order = (await add(client, staff_headers, table.id, {"menu_item_id": menu["burger"].id, "quantity": 1})).json()["order"]

    assert len(order["items"]) == 4
    assert Decimal(order["subtotal"]) == Decimal("21.00")


async def test_submit_then_complete(client, staff_headers, table, menu):
    order = (await add(client, staff_headers, table.id, {"menu_item_id": menu["burger"].id, "quantity": 1})).json()["order"]

    submitted = await client.post(f"/quick-service/orders/{order['id']}/submit", headers=staff_headers)
    assert submitted.status_code == 200
    assert submitted.json()["order"]["status"] == "preparing"
    assert submitted.json()["order"]["estimated_ready_time"] is not None

    again = await client.post(f"/quick-service/orders/{order['id']}/submit", headers=staff_headers)
    assert again.status_code == 422

    completed = (await client.post(f"/quick-service/orders/{order['id']}/complete", headers=staff_headers)).json()
    assert completed["order"]["status"] == "completed"
    assert completed["order"]["served_time"] is not None
    assert (await get_table(client, staff_headers, table.id))["status"] == "available"

    closed = await client.post(f"/quick-service/orders/{order['id']}/complete", headers=staff_headers)
    assert closed.status_code == 422


async def test_empty_booking_cannot_be_submitted(client, staff_headers, table):
    order = (
        await client.post(f"/quick-service/tables/{table.id}/book", json={"customer_name": "Sam"}, headers=staff_headers)
    ).json()["order"]

    response = await client.post(f"/quick-service/orders/{order['id']}/submit", headers=staff_headers)
    assert response.status_code == 422


async def test_quick_service_page_pairs_tables_with_open_orders(client, staff_headers, tables, menu, combo):
    await add(client, staff_headers, tables[0].id, {"menu_item_id": menu["soda"].id, "quantity": 1})

    page = (await client.get("/quick-service", headers=staff_headers)).json()

    assert page["component"] == "QuickService/Index"
    slots = {slot["table"]["table_number"]: slot["order"] for slot in page["props"]["tables"]}
    assert slots["T1"] is not None
    assert slots["T2"] is None
    assert page["props"]["combos"][0]["name"] == "Burger Deal"


async def test_billed_table_order_takes_no_more_lines(client, staff_headers, table, menu, combo):
    order = (await add(client, staff_headers, table.id, {"menu_item_id": menu["burger"].id, "quantity": 1})).json()["order"]
    await client.post(f"/orders/{order['id']}/generate-bill", headers=staff_headers)

    added = await add(client, staff_headers, table.id, {"menu_item_id": menu["soda"].id, "quantity": 1})
    combined = await client.post(
        f"/quick-service/tables/{table.id}/combos", json={"combo_id": combo.id}, headers=staff_headers
    )
    resized = await client.patch(
        f"/quick-service/items/{order['items'][0]['id']}", json={"quantity": 3}, headers=staff_headers
    )

    assert [r.status_code for r in (added, combined, resized)] == [422, 422, 422]
    page = (await client.get(f"/orders/{order['id']}", headers=staff_headers)).json()
    assert Decimal(page["props"]["bill"]["total_amount"]) == Decimal("12.00")
    assert Decimal(page["props"]["order"]["subtotal"]) == Decimal("10.00")
