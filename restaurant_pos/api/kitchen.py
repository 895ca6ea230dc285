"""
Kitchen display endpoints (kitchen or staff).
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import kitchen_or_staff
from restaurant_pos.database import get_db
from restaurant_pos.models import TargetRole, User, UserRole
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import (
    AssignRequest,
    ItemStatusUpdate,
    KitchenOrder,
    OrderAlertResponse,
    OrderResponse,
    OrderStatusUpdate,
    UserBrief,
)
from restaurant_pos.services import alerts, kitchen, orders as order_service, users

router = APIRouter(prefix="/kitchen", tags=["Kitchen"])


def _kitchen_order(order, now: datetime) -> KitchenOrder:
    return KitchenOrder(
        **OrderResponse.model_validate(order).model_dump(),
        minutes_elapsed=kitchen.minutes_elapsed(order, now),
    )


@router.get("", summary="Kitchen Page")
async def index(
    request: Request,
    user: User = Depends(kitchen_or_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """The caller's pending and preparing orders, most urgent first."""
    now = datetime.now()
    rows = await order_service.board_orders(db, kitchen.KITCHEN_STATUSES, owner=user)
    staff = await users.users_by_role(db, UserRole.KITCHEN)
    return await render_page(request, db, user, "Kitchen/Index", {
        "orders": [_kitchen_order(o, now) for o in rows],
        "kitchen_staff": [UserBrief.model_validate(u) for u in staff],
        "stats": await kitchen.status_counts(db, user),
    })


@router.patch("/orders/{order_id}/status")
async def update_status(
    order_id: int,
    data: OrderStatusUpdate,
    user: User = Depends(kitchen_or_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await kitchen.owned_order(db, order_id, user)
    order = await order_service.change_status(db, order, data.status)
    return action_result(
        f"Order status updated to {order.status.value}",
        order=OrderResponse.model_validate(order),
    )


@router.post("/orders/{order_id}/assign")
async def assign(
    order_id: int,
    data: AssignRequest,
    user: User = Depends(kitchen_or_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await kitchen.assign_order(db, order_id, data.assigned_to, user)
    return action_result(
        f"Order assigned to {order.assignee_name}",
        order=OrderResponse.model_validate(order),
    )


@router.patch("/orders/{order_id}/items/status")
async def update_item_status(
    order_id: int,
    data: ItemStatusUpdate,
    user: User = Depends(kitchen_or_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await kitchen.update_item_status(db, order_id, data.item_id, data.status, user)
    return action_result("Item status updated", order=OrderResponse.model_validate(order))


@router.get("/notifications", response_model=list[OrderAlertResponse])
async def notifications(
    user: User = Depends(kitchen_or_staff),
    db: AsyncSession = Depends(get_db),
) -> list[OrderAlertResponse]:
    """Unread kitchen alerts on the caller's orders."""
    order_ids = await kitchen.owned_order_ids(db, user)
    rows = await alerts.unread_alerts(db, TargetRole.KITCHEN, user, order_ids=order_ids)
    return [OrderAlertResponse.model_validate(a) for a in rows]


@router.post("/notifications/read-all")
async def mark_all_read(
    user: User = Depends(kitchen_or_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order_ids = await kitchen.owned_order_ids(db, user)
    count = await alerts.mark_all_read(db, TargetRole.KITCHEN, user, order_ids)
    return action_result(f"{count} notifications marked as read", count=count)


@router.post("/notifications/{alert_id}/read")
async def mark_read(
    alert_id: int,
    user: User = Depends(kitchen_or_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await alerts.mark_read(db, alert_id)
    return action_result("Notification marked as read")


@router.get("/realtime")
async def realtime(
    user: User = Depends(kitchen_or_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Polling feed of every order still in the kitchen's hands."""
    now = datetime.now()
    rows = await order_service.board_orders(db, kitchen.BOARD_STATUSES)
    return action_result(
        "Kitchen feed",
        orders=[_kitchen_order(o, now) for o in rows],
        stats=await kitchen.status_counts(db),
        timestamp=now.isoformat(),
    )
