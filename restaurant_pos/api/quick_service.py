"""
Quick service at the table (staff): walk-in booking, adding lines and
combos, sending to the kitchen and closing the order.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import staff_only
from restaurant_pos.database import get_db
from restaurant_pos.models import User
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import (
    AddComboRequest,
    AddItemsRequest,
    CategoryResponse,
    ComboResponse,
    MenuItemResponse,
    OrderResponse,
    QuantityUpdate,
    TableResponse,
    WalkInBooking,
)
from restaurant_pos.services import menu, orders as order_service, tables

router = APIRouter(prefix="/quick-service", tags=["Quick Service"])


@router.get("", summary="Quick Service Page")
async def index(
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """The floor with each table's open order next to the menu."""
    floor = await tables.list_tables(db, active_only=True)
    open_orders = await order_service.board_orders(db, order_service.OPEN_STATUSES)
    by_table = {o.table_id: OrderResponse.model_validate(o) for o in reversed(open_orders)}

    return await render_page(request, db, user, "QuickService/Index", {
        "tables": [
            {"table": TableResponse.model_validate(t), "order": by_table.get(t.id)}
            for t in floor
        ],
        "categories": [CategoryResponse.model_validate(c) for c in await menu.list_categories(db, active_only=True)],
        "menu_items": [MenuItemResponse.model_validate(i) for i in await menu.list_items(db, available_only=True)],
        "combos": [ComboResponse.model_validate(c) for c in await menu.list_combos(db)],
    })


@router.get("/tables/{table_id}/order")
async def table_order(
    table_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    table = await tables.get_table(db, table_id)
    order = await order_service.open_order_for_table(db, table.id)
    return action_result(
        "Open order" if order else "No open order",
        table=TableResponse.model_validate(table),
        order=OrderResponse.model_validate(order) if order else None,
    )


@router.post("/tables/{table_id}/book")
async def book(
    table_id: int,
    data: WalkInBooking,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.book_walk_in(db, table_id, data, user)
    return action_result(
        f"Table {order.table_number} booked for {data.customer_name}",
        order=OrderResponse.model_validate(order),
    )


@router.post("/tables/{table_id}/release")
async def release(
    table_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    table = await order_service.release_table(db, table_id)
    return action_result(f"Table {table.table_number} released", table=TableResponse.model_validate(table))


@router.post("/tables/{table_id}/items")
async def add_items(
    table_id: int,
    data: AddItemsRequest,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.add_items(db, table_id, data.items, user)
    return action_result("Items added to order", order=OrderResponse.model_validate(order))


@router.post("/tables/{table_id}/combos")
async def add_combo(
    table_id: int,
    data: AddComboRequest,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.add_combo(db, table_id, data.combo_id, data.quantity, user)
    return action_result("Combo added to order", order=OrderResponse.model_validate(order))


@router.patch("/items/{item_id}")
async def update_quantity(
    item_id: int,
    data: QuantityUpdate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.update_item_quantity(db, item_id, data.quantity)
    return action_result("Quantity updated", order=OrderResponse.model_validate(order))


@router.delete("/items/{item_id}")
async def remove_item(
    item_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.remove_item(db, item_id)
    if order is None:
        return action_result("Item removed; the empty order was discarded", order=None)
    return action_result("Item removed", order=OrderResponse.model_validate(order))


@router.post("/orders/{order_id}/submit")
async def submit(
    order_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.submit_to_kitchen(db, order_id)
    return action_result(
        f"Order {order.order_number} sent to the kitchen",
        order=OrderResponse.model_validate(order),
    )


@router.post("/orders/{order_id}/complete")
async def complete(
    order_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.complete_order(db, order_id)
    return action_result(
        f"Order {order.order_number} completed",
        order=OrderResponse.model_validate(order),
    )
