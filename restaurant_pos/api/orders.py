"""
Order endpoints (staff): listing, create/edit pages, status changes,
billing and split settlement.
"""

import logging
from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import get_notification_service, staff_only
from restaurant_pos.database import get_db
from restaurant_pos.models import OrderPriority, OrderStatus, User
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import (
    BillResponse,
    CategoryResponse,
    MenuItemResponse,
    OrderCreate,
    OrderResponse,
    OrderStatusUpdate,
    OrderUpdate,
    PaymentResponse,
    PromotionApply,
    SplitPaymentRequest,
    TableResponse,
)
from restaurant_pos.services import billing, menu, orders as order_service, tables
from restaurant_pos.services.notifications.base import BaseNotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])


async def _form_props(db: AsyncSession) -> dict[str, Any]:
    """Tables and menu for the create/edit forms."""
    return {
        "tables": [TableResponse.model_validate(t) for t in await tables.list_tables(db, active_only=True)],
        "categories": [CategoryResponse.model_validate(c) for c in await menu.list_categories(db, active_only=True)],
        "menu_items": [MenuItemResponse.model_validate(i) for i in await menu.list_items(db, available_only=True)],
        "priorities": [p.value for p in OrderPriority],
    }


@router.get("", summary="Orders Page")
async def index(
    request: Request,
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    table_id: Optional[int] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    rows, pagination = await order_service.list_orders(db, status_filter, table_id, date_from, date_to, page)
    return await render_page(request, db, user, "Orders/Index", {
        "orders": [OrderResponse.model_validate(o) for o in rows],
        "pagination": pagination,
        "filters": {
            "status": status_filter,
            "table_id": table_id,
            "date_from": date_from,
            "date_to": date_to,
        },
        "statuses": [s.value for s in OrderStatus],
    })


@router.get("/create")
async def create_page(
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    return await render_page(request, db, user, "Orders/Create", await _form_props(db))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create(
    data: OrderCreate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.create_order(db, data, user)
    return action_result(
        f"Order {order.order_number} created successfully",
        order=OrderResponse.model_validate(order),
    )


@router.get("/{order_id}")
async def show(
    order_id: int,
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.load_order(db, order_id)
    payments = await billing.order_payments(db, order.id)
    return await render_page(request, db, user, "Orders/Show", {
        "order": OrderResponse.model_validate(order),
        "bill": BillResponse.model_validate(order.bill) if order.bill else None,
        "payments": [PaymentResponse.model_validate(p) for p in payments],
    })


@router.get("/{order_id}/edit")
async def edit_page(
    order_id: int,
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.load_order(db, order_id)
    return await render_page(request, db, user, "Orders/Edit", {
        "order": OrderResponse.model_validate(order),
        **await _form_props(db),
    })


@router.put("/{order_id}")
async def update(
    order_id: int,
    data: OrderUpdate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.update_order(db, order_id, data)
    return action_result("Order updated successfully", order=OrderResponse.model_validate(order))


@router.delete("/{order_id}")
async def delete(
    order_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await order_service.delete_order(db, order_id)
    return action_result("Order deleted successfully")


@router.patch("/{order_id}/status")
async def update_status(
    order_id: int,
    data: OrderStatusUpdate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.update_status(db, order_id, data.status)
    return action_result(
        f"Order status updated to {order.status.value}",
        order=OrderResponse.model_validate(order),
    )


@router.post("/{order_id}/promotion")
async def apply_promotion(
    order_id: int,
    data: PromotionApply,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    order = await order_service.apply_promotion(db, order_id, data.code)
    return action_result(
        f"Promotion applied: {order.discount_amount} off",
        order=OrderResponse.model_validate(order),
    )


@router.post("/{order_id}/generate-bill", status_code=status.HTTP_201_CREATED)
async def generate_bill(
    order_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    bill = await billing.generate_bill(db, order_id)
    return action_result(f"Bill {bill.bill_number} generated", bill=BillResponse.model_validate(bill))


@router.get("/{order_id}/payments", response_model=list[PaymentResponse])
async def payments(
    order_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> list[PaymentResponse]:
    await order_service.load_order(db, order_id)
    return [PaymentResponse.model_validate(p) for p in await billing.order_payments(db, order_id)]


@router.post("/{order_id}/split-payment")
async def split_payment(
    order_id: int,
    data: SplitPaymentRequest,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
    notifier: BaseNotificationService = Depends(get_notification_service),
) -> dict[str, Any]:
    """Settle an order in several parts that add up to the amount due."""
    recorded = await billing.split_payment(db, order_id, data, user, notifier)
    return action_result(
        f"Payment split into {len(recorded)} parts",
        payments=[PaymentResponse.model_validate(p) for p in recorded],
    )
