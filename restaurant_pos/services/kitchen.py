"""
Kitchen display and reception board logic.

Both boards list orders by priority (high, normal, low) and then by age.
Kitchen users only act on orders they created or were assigned.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.config import get_settings
from restaurant_pos.core.dates import day_bounds, minutes_since
from restaurant_pos.core.exceptions import BusinessRuleError, NotFoundError, PermissionDeniedError
from restaurant_pos.models import (
    ItemStatus,
    Order,
    OrderPriority,
    OrderStatus,
    User,
    UserRole,
)
from restaurant_pos.services import alerts
from restaurant_pos.services.orders import change_status, load_order, owned_by
from restaurant_pos.services.sales import paid_revenue

logger = logging.getLogger(__name__)

KITCHEN_STATUSES = (OrderStatus.PENDING, OrderStatus.PREPARING)
BOARD_STATUSES = (OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.READY)


def is_owner(order: Order, user: User) -> bool:
    return user.id in (order.created_by, order.assigned_to)


async def owned_order(db: AsyncSession, order_id: int, user: User) -> Order:
    order = await load_order(db, order_id)
    if not is_owner(order, user):
        raise PermissionDeniedError("You can only manage your own orders")
    return order


async def owned_order_ids(db: AsyncSession, user: User) -> list[int]:
    result = await db.execute(select(Order.id).where(owned_by(user)))
    return list(result.scalars().all())


async def status_counts(db: AsyncSession, user: Optional[User] = None) -> dict[str, int]:
    stmt = select(Order.status, func.count(Order.id)).where(Order.status.in_(BOARD_STATUSES))
    if user is not None:
        stmt = stmt.where(owned_by(user))
    counts = {status: count for status, count in (await db.execute(stmt.group_by(Order.status))).all()}

    high = select(func.count(Order.id)).where(
        Order.status.in_(BOARD_STATUSES), Order.priority == OrderPriority.HIGH
    )
    if user is not None:
        high = high.where(owned_by(user))

    pending = counts.get(OrderStatus.PENDING, 0)
    preparing = counts.get(OrderStatus.PREPARING, 0)
    ready = counts.get(OrderStatus.READY, 0)
    return {
        "pending": pending,
        "preparing": preparing,
        "ready": ready,
        "total_active": pending + preparing + ready,
        "high_priority": await db.scalar(high) or 0,
    }


def minutes_elapsed(order: Order, now: Optional[datetime] = None) -> int:
    return minutes_since(order.order_time, now)


def estimated_time(order: Order, now: Optional[datetime] = None) -> datetime:
    """``now + (base + per_item x items) x (factor if high)`` minutes."""
    settings = get_settings()
    now = now or datetime.now()
    minutes = settings.kitchen_base_minutes + settings.kitchen_minutes_per_item * order.item_count
    if order.priority == OrderPriority.HIGH:
        minutes = minutes * settings.high_priority_factor
    return now + timedelta(minutes=minutes)


# =============================================================================
# KITCHEN ACTIONS
# =============================================================================

async def assign_order(db: AsyncSession, order_id: int, assignee_id: int, user: User) -> Order:
    order = await owned_order(db, order_id, user)
    assignee = await db.get(User, assignee_id)
    if assignee is None:
        raise NotFoundError("User", assignee_id)
    if assignee.role != UserRole.KITCHEN:
        raise BusinessRuleError("Orders can only be assigned to kitchen staff")
    if assignee.id != user.id and assignee.created_by != user.id:
        raise BusinessRuleError("You can only assign orders to yourself or kitchen staff you created")

    order.assigned_to = assignee.id
    alerts.notify_assignment(db, order, assignee)
    await db.commit()

    logger.info(f"Order {order.order_number} assigned to {assignee.name}")
    return await load_order(db, order.id)


async def update_item_status(db: AsyncSession, order_id: int, item_id: int, status: ItemStatus, user: User) -> Order:
    """Move one line; the order turns ready once every line is ready."""
    order = await owned_order(db, order_id, user)
    line = next((item for item in order.items if item.id == item_id), None)
    if line is None:
        raise NotFoundError("Order item", item_id)

    line.status = status
    if order.status not in (OrderStatus.READY, OrderStatus.SERVED, OrderStatus.COMPLETED, OrderStatus.CANCELLED) \
            and all(item.status == ItemStatus.READY for item in order.items):
        return await change_status(db, order, OrderStatus.READY)

    await db.commit()
    return await load_order(db, order.id)


async def mark_served(db: AsyncSession, order_id: int) -> Order:
    order = await load_order(db, order_id)
    if order.status != OrderStatus.READY:
        raise BusinessRuleError("Only ready orders can be marked as served")
    return await change_status(db, order, OrderStatus.SERVED)


async def change_priority(db: AsyncSession, order_id: int, priority: OrderPriority) -> Order:
    order = await load_order(db, order_id)
    if order.priority != priority:
        alerts.notify_priority_change(db, order, order.priority, priority)
        order.priority = priority
        await db.commit()
    return await load_order(db, order.id)


async def reception_stats(db: AsyncSession) -> dict[str, Any]:
    start, end = day_bounds(datetime.now().date())
    served_today = await db.scalar(
        select(func.count(Order.id)).where(
            Order.served_time >= start,
            Order.served_time < end,
        )
    )
    return {
        **await status_counts(db),
        "served_today": served_today or 0,
        "today_revenue": await paid_revenue(db, start, end),
    }
