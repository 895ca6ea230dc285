"""
Sales Service

Reporting over the caller's own orders (created or assigned): the sales
dashboard, the bill ledger report, menu analytics and ledger exports.

Revenue figures only count paid bills; item and category figures come
from order lines of non-cancelled orders.

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.config import get_settings
from restaurant_pos.core.dates import day_bounds, month_bounds, previous_month, range_bounds
from restaurant_pos.core.money import ZERO, growth, percentage, to_money
from restaurant_pos.models import (
    ACTIVE_ORDER_STATUSES,
    Bill,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    User,
)
from restaurant_pos.schemas import (
    CategorySales,
    HourlySales,
    ItemSales,
    ReportSummary,
    SalesTotals,
)
from restaurant_pos.services.orders import owned_by
from restaurant_pos.services.pagination import paginate

logger = logging.getLogger(__name__)

COMBO_CATEGORY = "Combos"


# =============================================================================
# REVENUE
# =============================================================================

async def paid_revenue(db: AsyncSession, start: datetime, end: datetime, user: Optional[User] = None) -> Decimal:
    """Sum of paid bill totals with ``bill_time`` in ``[start, end)``."""
    stmt = select(func.coalesce(func.sum(Bill.total_amount), 0)).where(
        Bill.payment_status == PaymentStatus.PAID,
        Bill.bill_time >= start,
        Bill.bill_time < end,
    )
    if user is not None:
        stmt = stmt.select_from(Bill).join(Order, Bill.order_id == Order.id).where(owned_by(user))
    return to_money(await db.scalar(stmt))


async def _count_orders(db: AsyncSession, user: User, *conditions) -> int:
    return await db.scalar(select(func.count(Order.id)).where(owned_by(user), *conditions)) or 0


async def _lines(db: AsyncSession, user: User, start: datetime, end: datetime) -> list[OrderItem]:
    result = await db.execute(
        select(OrderItem)
        .join(Order, OrderItem.order_id == Order.id)
        .where(
            owned_by(user),
            Order.status != OrderStatus.CANCELLED,
            Order.order_time >= start,
            Order.order_time < end,
        )
    )
    return list(result.scalars().all())


# =============================================================================
# GROUPING
# =============================================================================

def item_sales(lines: list[OrderItem], limit: int = 10) -> list[ItemSales]:
    """Menu items ranked by quantity sold, then revenue. Combo lines are skipped."""
    buckets: dict[int, dict[str, Any]] = {}
    for line in lines:
        if line.menu_item is None:
            continue
        entry = buckets.setdefault(
            line.menu_item_id,
            {
                "menu_item_id": line.menu_item_id,
                "name": line.menu_item.name,
                "category": line.menu_item.category_name,
                "quantity": 0,
                "revenue": ZERO,
            },
        )
        entry["quantity"] += line.quantity
        entry["revenue"] += Decimal(line.total_price)

    ranked = sorted(buckets.values(), key=lambda e: (-e["quantity"], -e["revenue"], e["name"]))
    return [ItemSales(**entry) for entry in ranked[:limit]]


def category_sales(lines: list[OrderItem]) -> list[CategorySales]:
    quantity: dict[str, int] = defaultdict(int)
    revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for line in lines:
        if line.combo_id is not None:
            name = COMBO_CATEGORY
        elif line.menu_item is not None:
            name = line.menu_item.category_name or "Uncategorized"
        else:
            continue
        quantity[name] += line.quantity
        revenue[name] += Decimal(line.total_price)

    total = sum(revenue.values(), ZERO)
    rows = [
        CategorySales(
            category=name,
            quantity=quantity[name],
            revenue=to_money(revenue[name]),
            percentage=percentage(revenue[name], total),
        )
        for name in quantity
    ]
    return sorted(rows, key=lambda row: (-row.revenue, row.category))


async def hourly_sales(db: AsyncSession, user: User, start: datetime, end: datetime) -> list[HourlySales]:
    result = await db.execute(
        select(Order.order_time, Order.total_amount).where(
            owned_by(user),
            Order.status != OrderStatus.CANCELLED,
            Order.order_time >= start,
            Order.order_time < end,
        )
    )
    orders: dict[int, int] = defaultdict(int)
    revenue: dict[int, Decimal] = defaultdict(lambda: ZERO)
    for order_time, total in result.all():
        orders[order_time.hour] += 1
        revenue[order_time.hour] += Decimal(total or 0)
    return [
        HourlySales(hour=hour, orders=orders[hour], revenue=to_money(revenue[hour]))
        for hour in sorted(orders)
    ]


# =============================================================================
# PAGES
# =============================================================================

async def dashboard(db: AsyncSession, user: User, today: Optional[date] = None) -> dict[str, Any]:
    today = today or date.today()
    today_start, today_end = day_bounds(today)
    yesterday_start, yesterday_end = day_bounds(today - timedelta(days=1))
    month_start, month_end = month_bounds(today)
    last_start, last_end = month_bounds(previous_month(today))

    today_sales = await paid_revenue(db, today_start, today_end, user)
    yesterday_sales = await paid_revenue(db, yesterday_start, yesterday_end, user)
    month_sales = await paid_revenue(db, month_start, month_end, user)
    last_month_sales = await paid_revenue(db, last_start, last_end, user)

    totals = SalesTotals(
        today=today_sales,
        yesterday=yesterday_sales,
        this_month=month_sales,
        last_month=last_month_sales,
        today_orders=await _count_orders(db, user, Order.order_time >= today_start, Order.order_time < today_end),
        active_orders=await _count_orders(db, user, Order.status.in_(ACTIVE_ORDER_STATUSES)),
        daily_growth=growth(today_sales, yesterday_sales),
        monthly_growth=growth(month_sales, last_month_sales),
    )

    lines = await _lines(db, user, today_start, today_end)
    result = await db.execute(
        select(Order).where(owned_by(user)).order_by(Order.order_time.desc(), Order.id.desc()).limit(10)
    )
    return {
        "totals": totals,
        "top_items": item_sales(lines, limit=10),
        "categories": category_sales(lines),
        "recent_orders": list(result.scalars().all()),
    }


def _bill_filters(user: User, date_from, date_to, payment_status, table_id) -> list:
    filters = [owned_by(user)]
    start, end = range_bounds(date_from, date_to)
    if start is not None:
        filters.append(Bill.bill_time >= start)
    if end is not None:
        filters.append(Bill.bill_time < end)
    if payment_status is not None:
        filters.append(Bill.payment_status == payment_status)
    if table_id is not None:
        filters.append(Bill.table_id == table_id)
    return filters


async def report(
    db: AsyncSession,
    user: User,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    payment_status: Optional[PaymentStatus] = None,
    table_id: Optional[int] = None,
    page: int = 1,
):
    """Filtered bill ledger page plus a summary over every matching bill."""
    filters = _bill_filters(user, date_from, date_to, payment_status, table_id)

    stmt = (
        select(Bill)
        .join(Order, Bill.order_id == Order.id)
        .where(*filters)
        .order_by(Bill.bill_time.desc(), Bill.id.desc())
    )
    bills, pagination = await paginate(db, stmt, page, get_settings().report_page_size)

    total, count = (
        await db.execute(
            select(func.coalesce(func.sum(Bill.total_amount), 0), func.count(Bill.id))
            .select_from(Bill)
            .join(Order, Bill.order_id == Order.id)
            .where(*filters)
        )
    ).one()
    total = to_money(total)
    summary = ReportSummary(
        total_sales=total,
        bill_count=count,
        average_sale=to_money(total / count) if count else ZERO,
    )
    return bills, pagination, summary


async def analytics(
    db: AsyncSession,
    user: User,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> dict[str, Any]:
    """Menu analytics; the default window is the last 30 days."""
    date_to = date_to or date.today()
    date_from = date_from or date_to - timedelta(days=30)
    start, end = range_bounds(date_from, date_to)

    lines = await _lines(db, user, start, end)
    return {
        "date_from": date_from.isoformat(),
        "date_to": date_to.isoformat(),
        "top_items": item_sales(lines, limit=20),
        "categories": category_sales(lines),
        "hourly": await hourly_sales(db, user, start, end),
    }


# =============================================================================
# EXPORT
# =============================================================================

def ledger_row(bill: Bill) -> dict[str, Any]:
    """One JSON-safe ledger row keyed by the export column names."""
    order = bill.order
    items = order.items if order else []
    return {
        "Bill Number": bill.bill_number,
        "Order Number": bill.order_number,
        "Table": bill.table_number or "",
        "Bill Date": bill.bill_time.strftime("%Y-%m-%d %H:%M"),
        "Subtotal": f"{to_money(bill.subtotal):.2f}",
        "Tax Amount": f"{to_money(bill.tax_amount):.2f}",
        "Total Amount": f"{to_money(bill.total_amount):.2f}",
        "Payment Status": bill.payment_status.value,
        "Payment Method": bill.payment_method.value if bill.payment_method else "",
        "Items Count": sum(item.quantity for item in items),
        "Items": "; ".join(f"{item.name} x{item.quantity}" for item in items),
    }


async def export_rows(
    db: AsyncSession,
    user: User,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    payment_status: Optional[PaymentStatus] = None,
    table_id: Optional[int] = None,
) -> list[dict[str, Any]]:
    filters = _bill_filters(user, date_from, date_to, payment_status, table_id)
    result = await db.execute(
        select(Bill)
        .join(Order, Bill.order_id == Order.id)
        .where(*filters)
        .order_by(Bill.bill_time.desc(), Bill.id.desc())
    )
    return [ledger_row(bill) for bill in result.scalars().all()]


def export_filename(day: Optional[date] = None, extension: str = "csv") -> str:
    return f"sales-report-{(day or date.today()).isoformat()}.{extension}"
