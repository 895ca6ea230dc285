"""
Order Service

Everything that changes an order goes through here:
- order/bill numbering
- totals recalculation against the active tax rule
- creation, editing, status transitions and deletion
- the per-table quick-service flow (walk-ins, adding lines, combos,
  promotions, submit and complete)

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
import random
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import case, delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.config import get_settings
from restaurant_pos.core.dates import range_bounds
from restaurant_pos.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from restaurant_pos.core.money import ZERO, to_money
from restaurant_pos.models import (
    ACTIVE_ORDER_STATUSES,
    MenuCombo,
    MenuItem,
    Order,
    OrderItem,
    OrderNotification,
    OrderPriority,
    OrderStatus,
    Payment,
    Promotion,
    Table,
    TableStatus,
    User,
)
from restaurant_pos.services import alerts
from restaurant_pos.services.pagination import paginate
from restaurant_pos.services.tables import get_table
from restaurant_pos.services.tax import current_tax_rate

logger = logging.getLogger(__name__)

# Orders still open for new lines
OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.PREPARING)

CLOSED_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

PRIORITY_RANK = case(
    {OrderPriority.HIGH: 0, OrderPriority.NORMAL: 1, OrderPriority.LOW: 2},
    value=Order.priority,
    else_=3,
)


# =============================================================================
# NUMBERING
# =============================================================================

async def generate_number(db: AsyncSession, column, prefix: str) -> str:
    """``PREFIX-YYYYMMDD-NNNN`` with a random suffix, retried until unused."""
    stamp = datetime.now().strftime("%Y%m%d")
    while True:
        candidate = f"{prefix}-{stamp}-{random.randint(1, 9999):04d}"
        if await db.scalar(select(column).where(column == candidate).limit(1)) is None:
            return candidate


async def generate_order_number(db: AsyncSession) -> str:
    return await generate_number(db, Order.order_number, get_settings().order_number_prefix)


# =============================================================================
# LOADING
# =============================================================================

async def load_order(db: AsyncSession, order_id: int) -> Order:
    """Fresh copy of an order with its lines, table and bill."""
    result = await db.execute(
        select(Order).where(Order.id == order_id).execution_options(populate_existing=True)
    )
    order = result.scalar_one_or_none()
    if order is None:
        raise NotFoundError("Order", order_id)
    return order


async def has_active_order(db: AsyncSession, table_id: int, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Order.id).where(Order.table_id == table_id, Order.status.in_(ACTIVE_ORDER_STATUSES))
    if exclude_id is not None:
        stmt = stmt.where(Order.id != exclude_id)
    return await db.scalar(stmt.limit(1)) is not None


async def open_order_for_table(db: AsyncSession, table_id: int) -> Optional[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.table_id == table_id, Order.status.in_(OPEN_STATUSES))
        .order_by(Order.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


def ensure_unbilled(order: Order) -> None:
    """Lines and discounts are frozen once the order has a bill."""
    if order.bill is not None:
        raise BusinessRuleError(
            f"Order {order.order_number} is already billed as {order.bill.bill_number}"
        )


async def list_orders(
    db: AsyncSession,
    status: Optional[OrderStatus] = None,
    table_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = 1,
    per_page: Optional[int] = None,
):
    stmt = select(Order)
    if status is not None:
        stmt = stmt.where(Order.status == status)
    if table_id is not None:
        stmt = stmt.where(Order.table_id == table_id)
    start, end = range_bounds(date_from, date_to)
    if start is not None:
        stmt = stmt.where(Order.order_time >= start)
    if end is not None:
        stmt = stmt.where(Order.order_time < end)
    stmt = stmt.order_by(Order.order_time.desc(), Order.id.desc())
    return await paginate(db, stmt, page, per_page or get_settings().page_size)


async def board_orders(
    db: AsyncSession,
    statuses: Iterable[OrderStatus],
    owner: Optional[User] = None,
) -> list[Order]:
    """Orders in ``statuses`` by priority (high first) then age."""
    stmt = select(Order).where(Order.status.in_(list(statuses)))
    if owner is not None:
        stmt = stmt.where(owned_by(owner))
    result = await db.execute(stmt.order_by(PRIORITY_RANK, Order.order_time, Order.id))
    return list(result.scalars().all())


def owned_by(user: User):
    """Orders a user created or has been assigned."""
    return (Order.created_by == user.id) | (Order.assigned_to == user.id)


# =============================================================================
# LINES & TOTALS
# =============================================================================

async def menu_items_for(db: AsyncSession, lines) -> dict[int, MenuItem]:
    """Menu items referenced by ``lines``; all must exist and be available."""
    ids = {line.menu_item_id for line in lines}
    result = await db.execute(select(MenuItem).where(MenuItem.id.in_(ids)))
    found = {item.id: item for item in result.scalars().all()}

    missing = ids - found.keys()
    if missing:
        raise NotFoundError("Menu item", min(missing))

    unavailable = sorted(item.name for item in found.values() if not item.is_available)
    if unavailable:
        raise BusinessRuleError(f"Currently unavailable: {', '.join(unavailable)}")
    return found


def build_line(menu_item: MenuItem, quantity: int, special_instructions: Optional[str] = None) -> OrderItem:
    """A new line priced at the menu item's current price."""
    unit_price = to_money(menu_item.price)
    return OrderItem(
        menu_item=menu_item,
        menu_item_id=menu_item.id,
        quantity=quantity,
        unit_price=unit_price,
        total_price=to_money(unit_price * quantity),
        special_instructions=special_instructions,
    )


def set_line_quantity(line: OrderItem, quantity: int) -> None:
    line.quantity = quantity
    line.total_price = to_money(Decimal(line.unit_price) * quantity)


async def update_totals(db: AsyncSession, order: Order) -> Order:
    """
    Recalculate the money columns from the lines.

    subtotal = sum of line totals, tax = subtotal x active rate,
    total = subtotal + tax - discount. The discount never exceeds the
    subtotal.
    """
    subtotal = to_money(sum((Decimal(line.total_price) for line in order.items), ZERO))
    rate = await current_tax_rate(db)
    discount = min(to_money(order.discount_amount or ZERO), subtotal)

    order.subtotal = subtotal
    order.tax_amount = to_money(subtotal * rate)
    order.discount_amount = discount
    order.total_amount = to_money(subtotal + order.tax_amount - discount)
    return order


# =============================================================================
# TABLE STATE
# =============================================================================

def occupy(table: Table) -> None:
    if table.status in (TableStatus.AVAILABLE, TableStatus.RESERVED):
        table.status = TableStatus.OCCUPIED
    table.has_active_order = True


async def free_table_if_idle(db: AsyncSession, table: Optional[Table], exclude_order_id: Optional[int] = None) -> bool:
    """Return the table to the floor when no other order still holds it."""
    if table is None:
        return False
    if await has_active_order(db, table.id, exclude_id=exclude_order_id):
        return False
    table.has_active_order = False
    if table.status in (TableStatus.OCCUPIED, TableStatus.RESERVED):
        table.status = TableStatus.AVAILABLE
    logger.info(f"Table {table.table_number} is available again")
    return True


# =============================================================================
# CRUD
# =============================================================================

async def create_order(db: AsyncSession, data, user: User) -> Order:
    table = await get_table(db, data.table_id)
    if not table.is_active or table.status == TableStatus.MAINTENANCE:
        raise BusinessRuleError(f"Table {table.table_number} is not in service")
    if await has_active_order(db, table.id):
        raise ConflictError(f"Table {table.table_number} already has an active order")
    if data.customer_id is not None and await db.get(User, data.customer_id) is None:
        raise NotFoundError("Customer", data.customer_id)

    menu = await menu_items_for(db, data.items)

    order = Order(
        order_number=await generate_order_number(db),
        table=table,
        status=OrderStatus.PENDING,
        priority=data.priority,
        special_instructions=data.special_instructions,
        customer_id=data.customer_id,
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        created_by=user.id,
        order_time=datetime.now(),
        discount_amount=ZERO,
    )
    for line in data.items:
        order.items.append(build_line(menu[line.menu_item_id], line.quantity, line.special_instructions))
    db.add(order)

    await update_totals(db, order)
    occupy(table)
    await db.flush()

    alerts.notify_new_order(db, order, user)
    await db.commit()

    logger.info(f"Order {order.order_number} created for table {table.table_number}: {order.total_amount}")
    return await load_order(db, order.id)


async def update_order(db: AsyncSession, order_id: int, data) -> Order:
    order = await load_order(db, order_id)
    changes = data.model_dump(exclude_unset=True)

    if "items" in changes and data.items is not None:
        if order.status != OrderStatus.PENDING:
            raise BusinessRuleError("Items can only be changed while the order is pending")
        ensure_unbilled(order)
        menu = await menu_items_for(db, data.items)
        order.items.clear()
        for line in data.items:
            order.items.append(build_line(menu[line.menu_item_id], line.quantity, line.special_instructions))

    if changes.get("priority") is not None and data.priority != order.priority:
        alerts.notify_priority_change(db, order, order.priority, data.priority)
        order.priority = data.priority

    if "special_instructions" in changes:
        order.special_instructions = data.special_instructions

    if "customer_id" in changes:
        if data.customer_id is not None and await db.get(User, data.customer_id) is None:
            raise NotFoundError("Customer", data.customer_id)
        order.customer_id = data.customer_id

    if order.bill is None:
        await update_totals(db, order)
    await db.commit()
    return await load_order(db, order.id)


async def _purge(db: AsyncSession, order: Order) -> None:
    """Delete an order with its alerts, payments and bill."""
    await db.execute(delete(OrderNotification).where(OrderNotification.order_id == order.id))
    await db.execute(delete(Payment).where(Payment.order_id == order.id))
    if order.bill is not None:
        await db.delete(order.bill)
    await db.delete(order)


async def delete_order(db: AsyncSession, order_id: int) -> None:
    order = await load_order(db, order_id)
    table, number = order.table, order.order_number

    await _purge(db, order)
    await db.flush()
    await free_table_if_idle(db, table, exclude_order_id=order_id)
    await db.commit()
    logger.info(f"Order {number} deleted")


# =============================================================================
# STATUS
# =============================================================================

def apply_status(order: Order, status: OrderStatus, now: Optional[datetime] = None) -> OrderStatus:
    """Set ``status`` and stamp the first ready/served times; returns the old status."""
    now = now or datetime.now()
    old = order.status
    order.status = status
    if status == OrderStatus.READY and order.ready_time is None:
        order.ready_time = now
    if status == OrderStatus.SERVED and order.served_time is None:
        order.served_time = now
    return old


async def change_status(db: AsyncSession, order: Order, status: OrderStatus) -> Order:
    old = apply_status(order, status)
    alerts.notify_status_change(db, order, old, status)
    if status in CLOSED_STATUSES:
        await free_table_if_idle(db, order.table, exclude_order_id=order.id)
    await db.commit()

    logger.info(f"Order {order.order_number}: {old.value} → {status.value}")
    return await load_order(db, order.id)


async def update_status(db: AsyncSession, order_id: int, status: OrderStatus) -> Order:
    order = await load_order(db, order_id)
    return await change_status(db, order, status)


# =============================================================================
# QUICK SERVICE
# =============================================================================

async def _new_table_order(db: AsyncSession, table: Table, user: User, **fields) -> Order:
    order = Order(
        order_number=await generate_order_number(db),
        table=table,
        status=OrderStatus.PENDING,
        priority=OrderPriority.NORMAL,
        created_by=user.id,
        order_time=datetime.now(),
        discount_amount=ZERO,
        **fields,
    )
    db.add(order)
    return order


async def _orderable_table(db: AsyncSession, table_id: int) -> Table:
    table = await get_table(db, table_id)
    if not table.is_active or table.status == TableStatus.MAINTENANCE:
        raise BusinessRuleError(f"Table {table.table_number} is not available for ordering")
    return table


async def book_walk_in(db: AsyncSession, table_id: int, data, user: User) -> Order:
    """Hold an available table for a walk-in party with an empty order."""
    table = await get_table(db, table_id)
    if not table.is_available:
        raise BusinessRuleError(f"Table {table.table_number} is not available")
    if data.party_size is not None and data.party_size > table.capacity:
        raise BusinessRuleError(f"Table {table.table_number} seats at most {table.capacity} guests")

    order = await _new_table_order(
        db, table, user,
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        special_instructions=data.special_instructions,
    )
    table.status = TableStatus.RESERVED
    table.has_active_order = True
    await db.commit()

    logger.info(f"Table {table.table_number} booked for walk-in {data.customer_name}")
    return await load_order(db, order.id)


async def release_table(db: AsyncSession, table_id: int) -> Table:
    """Undo a walk-in booking; only empty placeholder orders may be dropped."""
    table = await get_table(db, table_id)
    if table.status != TableStatus.RESERVED:
        raise BusinessRuleError(f"Table {table.table_number} is not reserved")

    result = await db.execute(
        select(Order).where(Order.table_id == table.id, Order.status.in_(ACTIVE_ORDER_STATUSES))
    )
    open_orders = list(result.scalars().all())
    if any(order.items for order in open_orders):
        raise BusinessRuleError("Cannot release a table with active orders")

    for order in open_orders:
        await _purge(db, order)
    table.status = TableStatus.AVAILABLE
    table.has_active_order = False
    await db.commit()
    await db.refresh(table)
    return table


async def add_items(db: AsyncSession, table_id: int, lines, user: User) -> Order:
    """
    Add lines to the table's open order, starting one when needed.

    A line for a menu item already on the order with the same instructions
    is merged into the existing line.
    """
    table = await _orderable_table(db, table_id)
    menu = await menu_items_for(db, lines)

    order = await open_order_for_table(db, table.id)
    if order is None:
        order = await _new_table_order(db, table, user)
    else:
        ensure_unbilled(order)

    for line in lines:
        instructions = line.special_instructions or None
        existing = next(
            (
                item for item in order.items
                if item.menu_item_id == line.menu_item_id
                and item.combo_id is None
                and (item.special_instructions or None) == instructions
                and Decimal(item.unit_price) > 0
            ),
            None,
        )
        if existing is not None:
            set_line_quantity(existing, existing.quantity + line.quantity)
        else:
            order.items.append(build_line(menu[line.menu_item_id], line.quantity, instructions))

    await update_totals(db, order)
    occupy(table)
    await db.commit()
    return await load_order(db, order.id)


async def _editable_line(db: AsyncSession, item_id: int) -> tuple[Order, OrderItem]:
    order_id = await db.scalar(select(OrderItem.order_id).where(OrderItem.id == item_id))
    if order_id is None:
        raise NotFoundError("Order item", item_id)
    order = await load_order(db, order_id)
    if order.status not in OPEN_STATUSES:
        raise BusinessRuleError("Lines can only be changed on pending or preparing orders")
    ensure_unbilled(order)
    line = next(item for item in order.items if item.id == item_id)
    return order, line


async def remove_item(db: AsyncSession, item_id: int) -> Optional[Order]:
    """Drop a line; an order left empty is deleted. Returns the order or None."""
    order, line = await _editable_line(db, item_id)
    order.items.remove(line)

    if not order.items:
        table, order_id = order.table, order.id
        await _purge(db, order)
        await db.flush()
        await free_table_if_idle(db, table, exclude_order_id=order_id)
        await db.commit()
        return None

    await update_totals(db, order)
    await db.commit()
    return await load_order(db, order.id)


async def update_item_quantity(db: AsyncSession, item_id: int, quantity: int) -> Order:
    order, line = await _editable_line(db, item_id)
    set_line_quantity(line, quantity)
    await update_totals(db, order)
    await db.commit()
    return await load_order(db, order.id)


async def submit_to_kitchen(db: AsyncSession, order_id: int) -> Order:
    order = await load_order(db, order_id)
    if order.status != OrderStatus.PENDING:
        raise BusinessRuleError("Only pending orders can be sent to the kitchen")
    if not order.items:
        raise BusinessRuleError("Cannot send an empty order to the kitchen")

    order.estimated_ready_time = datetime.now() + timedelta(minutes=get_settings().kitchen_base_minutes)
    return await change_status(db, order, OrderStatus.PREPARING)


async def complete_order(db: AsyncSession, order_id: int) -> Order:
    order = await load_order(db, order_id)
    if order.status in CLOSED_STATUSES:
        raise BusinessRuleError(f"Order is already {order.status.value}")
    if order.served_time is None:
        order.served_time = datetime.now()
    return await change_status(db, order, OrderStatus.COMPLETED)


async def add_combo(db: AsyncSession, table_id: int, combo_id: int, quantity: int, user: User) -> Order:
    """One priced combo line plus zero-priced lines for each component."""
    table = await _orderable_table(db, table_id)
    combo = await db.get(MenuCombo, combo_id)
    if combo is None:
        raise NotFoundError("Combo", combo_id)
    if not combo.is_active:
        raise BusinessRuleError(f"Combo '{combo.name}' is not available")

    order = await open_order_for_table(db, table.id)
    if order is None:
        order = await _new_table_order(db, table, user)
    else:
        ensure_unbilled(order)

    price = to_money(combo.combo_price)
    order.items.append(
        OrderItem(
            combo=combo,
            combo_id=combo.id,
            quantity=quantity,
            unit_price=price,
            total_price=to_money(price * quantity),
        )
    )
    for component in combo.items:
        order.items.append(
            OrderItem(
                menu_item=component.menu_item,
                menu_item_id=component.menu_item_id,
                quantity=component.quantity * quantity,
                unit_price=ZERO,
                total_price=ZERO,
                special_instructions=f"Part of combo: {combo.name}",
            )
        )

    await update_totals(db, order)
    occupy(table)
    await db.commit()
    return await load_order(db, order.id)


async def apply_promotion(db: AsyncSession, order_id: int, code: str) -> Order:
    order = await load_order(db, order_id)
    if order.status in CLOSED_STATUSES:
        raise BusinessRuleError(f"Cannot discount a {order.status.value} order")
    ensure_unbilled(order)

    promotion = await db.scalar(select(Promotion).where(Promotion.name == code))
    if promotion is None:
        raise NotFoundError("Promotion", code)
    if not promotion.can_be_used():
        raise BusinessRuleError(f"Promotion '{code}' is not valid right now")

    # Totals may be stale if the tax rule changed since the last edit
    await update_totals(db, order)
    minimum = promotion.minimum_order_amount
    if minimum is not None and order.subtotal < minimum:
        raise BusinessRuleError(f"Promotion '{code}' needs a minimum order of {to_money(minimum)}")

    order.discount_amount = promotion.calculate_discount(order.subtotal)
    if order.promotion_id != promotion.id:
        promotion.usage_count = (promotion.usage_count or 0) + 1
    order.promotion_id = promotion.id
    await update_totals(db, order)
    await db.commit()

    logger.info(f"Promotion {code} applied to {order.order_number}: -{order.discount_amount}")
    return await load_order(db, order.id)

