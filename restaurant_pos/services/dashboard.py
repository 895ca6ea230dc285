"""
Front-of-house dashboard: table board, floor plan, reservation calendar
and reservation analytics.
"""

from collections import Counter, defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.dates import day_bounds, range_bounds
from restaurant_pos.core.money import percentage
from restaurant_pos.models import BLOCKING_RESERVATION_STATUSES, ReservationStatus, TableStatus
from restaurant_pos.services.reservations import reservations_between
from restaurant_pos.services.tables import list_tables


def table_stats(tables) -> dict[str, int]:
    counts = Counter(table.status for table in tables if table.is_active)
    return {
        "total": sum(1 for table in tables if table.is_active),
        "available": counts[TableStatus.AVAILABLE],
        "occupied": counts[TableStatus.OCCUPIED],
        "reserved": counts[TableStatus.RESERVED],
        "maintenance": counts[TableStatus.MAINTENANCE],
    }


async def cafe_dashboard(db: AsyncSession, today: Optional[date] = None) -> dict[str, Any]:
    today = today or date.today()
    tables = await list_tables(db)
    start, end = day_bounds(today)

    todays = await reservations_between(db, start, end)
    recent = await reservations_between(db, start - timedelta(days=7), end)
    recent.sort(key=lambda r: (r.created_at or r.reservation_date), reverse=True)

    return {
        "stats": {
            **table_stats(tables),
            "today_reservations": len(todays),
            "pending_reservations": sum(1 for r in todays if r.status == ReservationStatus.PENDING),
        },
        "today_reservations": todays,
        "recent_reservations": recent[:10],
        "tables": tables,
    }


async def floor_plan(db: AsyncSession, now: Optional[datetime] = None) -> list[dict[str, Any]]:
    """Active tables with positions and whether a booking covers ``now``."""
    now = now or datetime.now()
    tables = await list_tables(db, active_only=True)
    current = await reservations_between(db, now - timedelta(hours=8), now + timedelta(minutes=1))
    booked = {
        r.table_id for r in current
        if r.status in BLOCKING_RESERVATION_STATUSES and r.reservation_date <= now <= r.end_time
    }
    return [
        {
            "id": table.id,
            "table_number": table.table_number,
            "name": table.name,
            "capacity": table.capacity,
            "status": table.status.value,
            "position": table.position,
            "has_active_order": table.has_active_order,
            "has_active_reservation": table.id in booked,
        }
        for table in tables
    ]


async def calendar(db: AsyncSession, day: date) -> dict[str, Any]:
    start, end = day_bounds(day)
    reservations = await reservations_between(db, start, end)
    by_hour: dict[int, list] = defaultdict(list)
    for reservation in reservations:
        by_hour[reservation.reservation_date.hour].append(reservation)
    return {
        "date": day.isoformat(),
        "reservations": reservations,
        "by_hour": {hour: by_hour[hour] for hour in sorted(by_hour)},
    }


async def reservation_analytics(
    db: AsyncSession,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
) -> dict[str, Any]:
    """Daily counts, table utilisation and popular hours; default window is 30 days."""
    date_to = date_to or date.today()
    date_from = date_from or date_to - timedelta(days=30)
    start, end = range_bounds(date_from, date_to)

    reservations = [
        r for r in await reservations_between(db, start, end)
        if r.status != ReservationStatus.CANCELLED
    ]
    tables = await list_tables(db, active_only=True)

    daily = Counter(r.reservation_date.date().isoformat() for r in reservations)
    per_table = Counter(r.table_id for r in reservations)
    hours = Counter(r.reservation_date.hour for r in reservations)
    total = len(reservations)

    return {
        "date_from": date_from.isoformat(),
        "date_to": date_to.isoformat(),
        "total_reservations": total,
        "total_guests": sum(r.party_size for r in reservations),
        "daily": [{"date": day, "count": daily[day]} for day in sorted(daily)],
        "table_utilization": [
            {
                "table_id": table.id,
                "table_number": table.table_number,
                "reservations": per_table[table.id],
                "percentage": percentage(per_table[table.id], total),
            }
            for table in tables
        ],
        "popular_hours": [{"hour": hour, "count": count} for hour, count in hours.most_common(5)],
    }
