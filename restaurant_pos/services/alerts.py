"""
Order alerts for the kitchen and reception boards.

An alert targets a role (``all`` reaches every board) and optionally a
specific user; user-less alerts are visible to everyone on that board.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import select, update, or_
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.exceptions import NotFoundError
from restaurant_pos.models import (
    NotificationType,
    Order,
    OrderNotification,
    OrderStatus,
    TargetRole,
    User,
)

logger = logging.getLogger(__name__)

ALERT_LIMIT = 50


def create_alert(
    db: AsyncSession,
    order: Order,
    type: NotificationType,
    title: str,
    message: str,
    target_role: TargetRole,
    user: Optional[User] = None,
    data: Optional[dict] = None,
) -> OrderNotification:
    """Stage an alert on the session; the caller commits."""
    alert = OrderNotification(
        order_id=order.id,
        user_id=user.id if user else None,
        type=type,
        title=title,
        message=message,
        data=data or {},
        target_role=target_role,
    )
    db.add(alert)
    logger.debug(f"Alert [{target_role.value}] {title}: {message}")
    return alert


def notify_new_order(db: AsyncSession, order: Order, creator: Optional[User]) -> None:
    table = order.table.table_number if order.table else "Unknown"
    create_alert(
        db, order, NotificationType.NEW_ORDER,
        "New Order Received",
        f"Order #{order.order_number} for Table {table}",
        TargetRole.KITCHEN,
    )
    create_alert(
        db, order, NotificationType.NEW_ORDER,
        "New Order Created",
        f"Order #{order.order_number} created by {creator.name if creator else 'Unknown'}",
        TargetRole.RECEPTION,
        user=creator,
    )


def notify_status_change(db: AsyncSession, order: Order, old: OrderStatus, new: OrderStatus) -> None:
    """Progress the front of house cares about goes to reception, the rest to the kitchen."""
    if old == new:
        return
    target = TargetRole.RECEPTION if new in (OrderStatus.PREPARING, OrderStatus.READY) else TargetRole.KITCHEN
    alert_type = {
        OrderStatus.READY: NotificationType.READY,
        OrderStatus.CANCELLED: NotificationType.CANCELLED,
    }.get(new, NotificationType.STATUS_CHANGE)
    create_alert(
        db, order, alert_type,
        "Order Status Updated",
        f"Order #{order.order_number} status changed from {old.value} to {new.value}",
        target,
        data={"old_status": old.value, "new_status": new.value},
    )


def notify_priority_change(db: AsyncSession, order: Order, old, new) -> None:
    create_alert(
        db, order, NotificationType.PRIORITY_CHANGE,
        "Order Priority Changed",
        f"Order #{order.order_number} priority changed from {old.value} to {new.value}",
        TargetRole.KITCHEN,
        data={"old_priority": old.value, "new_priority": new.value},
    )


def notify_assignment(db: AsyncSession, order: Order, assignee: User) -> None:
    create_alert(
        db, order, NotificationType.ASSIGNED,
        "Order Assigned",
        f"Order #{order.order_number} assigned to {assignee.name}",
        TargetRole.KITCHEN,
        user=assignee,
    )


def notify_payment_request(db: AsyncSession, order: Order, bill_number: str) -> None:
    create_alert(
        db, order, NotificationType.PAYMENT_REQUEST,
        "Bill Ready",
        f"Bill {bill_number} generated for order #{order.order_number}",
        TargetRole.RECEPTION,
    )


# =============================================================================
# QUERIES
# =============================================================================

async def unread_alerts(
    db: AsyncSession,
    role: TargetRole,
    user: User,
    order_ids: Optional[Sequence[int]] = None,
    limit: int = ALERT_LIMIT,
) -> list[OrderNotification]:
    """Unread alerts for ``role`` (including ``all``) addressed to ``user`` or to nobody."""
    stmt = (
        select(OrderNotification)
        .where(
            OrderNotification.is_read.is_(False),
            OrderNotification.target_role.in_([role, TargetRole.ALL]),
            or_(OrderNotification.user_id == user.id, OrderNotification.user_id.is_(None)),
        )
        .order_by(OrderNotification.created_at.desc(), OrderNotification.id.desc())
        .limit(limit)
    )
    if order_ids is not None:
        stmt = stmt.where(OrderNotification.order_id.in_(list(order_ids)))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def mark_read(db: AsyncSession, alert_id: int) -> OrderNotification:
    alert = await db.get(OrderNotification, alert_id)
    if alert is None:
        raise NotFoundError("Notification", alert_id)
    if not alert.is_read:
        alert.is_read = True
        alert.read_at = datetime.now()
        await db.commit()
    return alert


async def mark_all_read(
    db: AsyncSession,
    role: TargetRole,
    user: User,
    order_ids: Optional[Sequence[int]] = None,
) -> int:
    conditions = [
        OrderNotification.is_read.is_(False),
        OrderNotification.target_role.in_([role, TargetRole.ALL]),
        or_(OrderNotification.user_id == user.id, OrderNotification.user_id.is_(None)),
    ]
    if order_ids is not None:
        conditions.append(OrderNotification.order_id.in_(list(order_ids)))
    result = await db.execute(
        update(OrderNotification)
        .where(*conditions)
        .values(is_read=True, read_at=datetime.now())
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount
