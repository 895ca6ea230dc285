"""Login, account management and the menu catalogue."""

from datetime import datetime, timedelta
from decimal import Decimal

from conftest import PASSWORD, auth


# =============================================================================
# AUTH
# =============================================================================

async def test_login_returns_token_and_user(client, staff):
    response = await client.post("/auth/login", json={"email": "STAFF@test.com", "password": PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"] == {"id": staff.id, "name": "Front Desk", "role": "staff"}

    me = await client.get("/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.json()["email"] == "staff@test.com"


async def test_login_rejects_bad_password(client, staff):
    response = await client.post("/auth/login", json={"email": "staff@test.com", "password": "wrong"})
    assert response.status_code == 401


async def test_garbage_token_is_unauthorized(client):
    response = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


async def test_profile_and_password(client, customer):
    headers = auth(customer)

    page = (await client.get("/auth/profile", headers=headers)).json()
    assert page["component"] == "Profile/Edit"
    assert page["props"]["auth"]["user"]["role"] == "customer"

    updated = (await client.put("/auth/profile", json={"name": "Renamed Guest"}, headers=headers)).json()
    assert updated["user"]["name"] == "Renamed Guest"

    wrong = await client.put(
        "/auth/password", json={"current_password": "nope", "password": "brand-new-pass"}, headers=headers
    )
    assert wrong.status_code == 422

    changed = await client.put(
        "/auth/password", json={"current_password": PASSWORD, "password": "brand-new-pass"}, headers=headers
    )
    assert changed.json()["success"] is True
    login = await client.post("/auth/login", json={"email": "guest@test.com", "password": "brand-new-pass"})
    assert login.status_code == 200


# =============================================================================
# USERS
# =============================================================================

async def test_staff_creates_users(client, staff, staff_headers):
    response = await client.post(
        "/users",
        json={"name": "Night Cook", "email": "Night@Test.com", "password": "kitchen-pass", "role": "kitchen"},
        headers=staff_headers,
    )

    assert response.status_code == 201
    created = response.json()["user"]
    assert created["email"] == "night@test.com"
    assert created["created_by"] == staff.id

    duplicate = await client.post(
        "/users",
        json={"name": "Copy", "email": "night@test.com", "password": "kitchen-pass"},
        headers=staff_headers,
    )
    assert duplicate.status_code == 409

    kitchen = (await client.get("/users/role/kitchen", headers=staff_headers)).json()
    assert [u["name"] for u in kitchen] == ["Night Cook"]


async def test_users_page_filters(client, staff_headers, cook, customer):
    page = (await client.get("/users?role=customer", headers=staff_headers)).json()

    assert page["component"] == "Users/Index"
    assert [u["id"] for u in page["props"]["users"]] == [customer.id]
    assert page["props"]["pagination"]["total"] == 1

    found = (await client.get("/users?search=cook", headers=staff_headers)).json()
    assert [u["id"] for u in found["props"]["users"]] == [cook.id]


async def test_only_own_accounts_can_be_deleted(client, staff, staff_headers, cook, customer):
    own = await client.delete(f"/users/{staff.id}", headers=staff_headers)
    not_created = await client.delete(f"/users/{customer.id}", headers=staff_headers)
    created = await client.delete(f"/users/{cook.id}", headers=staff_headers)

    assert own.status_code == 422
    assert not_created.status_code == 403
    assert not_created.json()["error"] == "permission_denied"
    assert created.status_code == 200
    assert (await client.get(f"/users/{cook.id}", headers=staff_headers)).status_code == 404


async def test_deactivated_user_cannot_log_in(client, staff_headers, cook):
    toggled = (await client.post(f"/users/{cook.id}/toggle-active", headers=staff_headers)).json()
    assert toggled["message"] == "User deactivated successfully"

    response = await client.post("/auth/login", json={"email": "cook@test.com", "password": PASSWORD})
    assert response.status_code == 401
    assert (await client.get("/kitchen", headers=auth(cook))).status_code == 401


async def test_user_management_is_staff_only(client, cook):
    response = await client.get("/users", headers=auth(cook))
    assert response.status_code == 403


# =============================================================================
# MENU
# =============================================================================

async def test_category_lifecycle(client, staff_headers, menu):
    created = await client.post("/menu/categories", json={"name": "Desserts", "sort_order": 5}, headers=staff_headers)
    assert created.status_code == 201
    category_id = created.json()["category"]["id"]

    duplicate = await client.post("/menu/categories", json={"name": "Desserts"}, headers=staff_headers)
    assert duplicate.status_code == 409

    renamed = await client.put(f"/menu/categories/{category_id}", json={"name": "Sweets"}, headers=staff_headers)
    assert renamed.json()["category"]["name"] == "Sweets"

    page = (await client.get("/menu/categories", headers=staff_headers)).json()
    assert [c["name"] for c in page["props"]["categories"]] == ["Mains", "Drinks", "Sweets"]

    assert (await client.delete(f"/menu/categories/{category_id}", headers=staff_headers)).status_code == 200


async def test_category_with_items_cannot_be_deleted(client, staff_headers, menu):
    response = await client.delete(f"/menu/categories/{menu['burger'].category_id}", headers=staff_headers)
    assert response.status_code == 422


async def test_create_and_update_item(client, staff_headers, menu):
    response = await client.post(
        "/menu/items",
        json={"category_id": menu["burger"].category_id, "name": "Veggie Burger", "price": "12.5"},
        headers=staff_headers,
    )

    assert response.status_code == 201
    item = response.json()["item"]
    assert Decimal(item["price"]) == Decimal("12.50")
    assert item["formatted_price"] == "$ 12.50"
    assert item["category_name"] == "Mains"

    updated = (
        await client.put(f"/menu/items/{item['id']}", json={"price": "13.00"}, headers=staff_headers)
    ).json()["item"]
    assert updated["formatted_price"] == "$ 13.00"

    missing_category = await client.post(
        "/menu/items", json={"category_id": 999, "name": "Ghost", "price": "1.00"}, headers=staff_headers
    )
    assert missing_category.status_code == 404


async def test_toggle_availability_hides_item(client, staff_headers, menu):
    fries = menu["fries"]

    toggled = (await client.post(f"/menu/items/{fries.id}/toggle-availability", headers=staff_headers)).json()
    assert toggled["message"] == "Fries is now unavailable"

    detail = (await client.get(f"/menu/categories/{fries.category_id}", headers=staff_headers)).json()
    assert [i["name"] for i in detail["items"]] == ["Burger"]

    available = (await client.get("/menu/items?available=true", headers=staff_headers)).json()
    assert "Fries" not in [i["name"] for i in available["props"]["items"]]


async def test_item_on_an_order_cannot_be_deleted(client, staff_headers, table, menu):
    await client.post(
        "/orders",
        json={"table_id": table.id, "items": [{"menu_item_id": menu["soda"].id, "quantity": 1}]},
        headers=staff_headers,
    )

    response = await client.delete(f"/menu/items/{menu['soda'].id}", headers=staff_headers)
    assert response.status_code == 422
    assert (await client.delete(f"/menu/items/{menu['fries'].id}", headers=staff_headers)).status_code == 200


async def test_create_combo_reports_savings(client, staff_headers, menu):
    response = await client.post(
        "/menu/combos",
        json={
            "name": "Lunch Deal",
            "combo_price": "11.00",
            "savings_amount": "1.00",
            "items": [
                {"menu_item_id": menu["burger"].id},
                {"menu_item_id": menu["soda"].id},
            ],
        },
        headers=staff_headers,
    )

    assert response.status_code == 201
    combo = response.json()["combo"]
    assert Decimal(combo["individual_items_total"]) == Decimal("12.00")
    assert combo["savings_percentage"] == 8.3
    assert [i["name"] for i in combo["items"]] == ["Burger", "Soda"]

    listed = (await client.get("/menu/combos", headers=staff_headers)).json()
    assert [c["name"] for c in listed] == ["Lunch Deal"]


async def test_modifiers(client, staff_headers, menu):
    burger = menu["burger"]
    response = await client.post(
        "/menu/modifiers",
        json={"menu_item_id": burger.id, "name": "Extra cheese", "price_adjustment": "1.5"},
        headers=staff_headers,
    )
    assert response.json()["modifier"]["formatted_price_adjustment"] == "+$ 1.50"

    removal = await client.post(
        "/menu/modifiers",
        json={"menu_item_id": burger.id, "name": "No onion", "modifier_type": "remove"},
        headers=staff_headers,
    )
    assert removal.json()["modifier"]["formatted_price_adjustment"] == "-$ 0.00"

    listed = (await client.get(f"/menu/items/{burger.id}/modifiers", headers=staff_headers)).json()
    assert [m["name"] for m in listed] == ["Extra cheese", "No onion"]


async def test_promotion_validation(client, staff_headers):
    now = datetime.now()
    window = {"start_time": now.isoformat(), "end_time": (now + timedelta(days=7)).isoformat()}

    created = await client.post(
        "/menu/promotions",
        json={"name": "WEEKEND", "discount_type": "percentage", "discount_value": "15", **window},
        headers=staff_headers,
    )
    duplicate = await client.post(
        "/menu/promotions",
        json={"name": "WEEKEND", "discount_type": "fixed_amount", "discount_value": "5", **window},
        headers=staff_headers,
    )
    too_generous = await client.post(
        "/menu/promotions",
        json={"name": "FREEBIE", "discount_type": "percentage", "discount_value": "150", **window},
        headers=staff_headers,
    )
    backwards = await client.post(
        "/menu/promotions",
        json={
            "name": "BACKWARDS",
            "discount_type": "fixed_amount",
            "discount_value": "5",
            "start_time": window["end_time"],
            "end_time": window["start_time"],
        },
        headers=staff_headers,
    )

    assert created.status_code == 201
    assert created.json()["promotion"]["usage_count"] == 0
    assert duplicate.status_code == 409
    assert too_generous.status_code == 422
    assert backwards.status_code == 422


async def test_customers_read_but_do_not_edit_the_menu(client, customer, menu):
    headers = auth(customer)

    page = await client.get("/menu/items", headers=headers)
    assert page.status_code == 200
    assert len(page.json()["props"]["items"]) == 3

    response = await client.post("/menu/categories", json={"name": "Secret"}, headers=headers)
    assert response.status_code == 403
