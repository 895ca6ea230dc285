"""
Reception board endpoints (staff).
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import staff_only
from restaurant_pos.database import get_db
from restaurant_pos.models import OrderStatus, TargetRole, User
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import (
    OrderAlertResponse,
    OrderResponse,
    PriorityUpdate,
    ReceptionOrder,
    TableResponse,
)
from restaurant_pos.services import alerts, kitchen, orders as order_service, tables

router = APIRouter(prefix="/reception", tags=["Reception"])


def _reception_order(order, now: datetime) -> ReceptionOrder:
    return ReceptionOrder(
        **OrderResponse.model_validate(order).model_dump(),
        estimated_time=kitchen.estimated_time(order, now),
    )


async def _board(db: AsyncSession) -> dict[str, Any]:
    now = datetime.now()
    active = await order_service.board_orders(db, kitchen.BOARD_STATUSES)
    ready = sorted(
        (o for o in active if o.status == OrderStatus.READY),
        key=lambda o: o.ready_time or o.order_time,
    )
    return {
        "orders": [_reception_order(o, now) for o in active],
        "ready_orders": [OrderResponse.model_validate(o) for o in ready],
        "stats": await kitchen.reception_stats(db),
        "timestamp": now.isoformat(),
    }


@router.get("", summary="Reception Page")
async def index(
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    board = await _board(db)
    board.pop("timestamp")
    return await render_page(request, db, user, "Reception/Index", {
        **board,
        "tables": [TableResponse.model_validate(t) for t in await tables.list_tables(db, active_only=True)],
    })


@router.post("/orders/{order_id}/served")
async def mark_served(
    order_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await kitchen.mark_served(db, order_id)
    return action_result(
        f"Order {order.order_number} served",
        order=OrderResponse.model_validate(order),
    )


@router.patch("/orders/{order_id}/priority")
async def update_priority(
    order_id: int,
    data: PriorityUpdate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await kitchen.change_priority(db, order_id, data.priority)
    return action_result(
        f"Priority set to {order.priority.value}",
        order=OrderResponse.model_validate(order),
    )


@router.get("/notifications", response_model=list[OrderAlertResponse])
async def notifications(
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> list[OrderAlertResponse]:
    rows = await alerts.unread_alerts(db, TargetRole.RECEPTION, user)
    return [OrderAlertResponse.model_validate(a) for a in rows]


@router.post("/notifications/read-all")
async def mark_all_read(
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    count = await alerts.mark_all_read(db, TargetRole.RECEPTION, user)
    return action_result(f"{count} notifications marked as read", count=count)


@router.post("/notifications/{alert_id}/read")
async def mark_read(
    alert_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await alerts.mark_read(db, alert_id)
    return action_result("Notification marked as read")


@router.get("/realtime")
async def realtime(
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    return action_result("Reception feed", **await _board(db))
