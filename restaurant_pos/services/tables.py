"""
Tables, table types and slot availability.

A reservation slot ``[start, end]`` collides with an existing booking
``[s, e]`` when either edge of the booking falls inside the slot or the
booking swallows it whole.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from restaurant_pos.models import (
    ACTIVE_ORDER_STATUSES,
    BLOCKING_RESERVATION_STATUSES,
    Order,
    Reservation,
    Table,
    TableStatus,
    TableType,
)

logger = logging.getLogger(__name__)


async def get_table(db: AsyncSession, table_id: int) -> Table:
    table = await db.get(Table, table_id)
    if table is None:
        raise NotFoundError("Table", table_id)
    return table


async def list_tables(db: AsyncSession, active_only: bool = False) -> list[Table]:
    stmt = select(Table).order_by(Table.table_number)
    if active_only:
        stmt = stmt.where(Table.is_active.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_table_types(db: AsyncSession) -> list[TableType]:
    result = await db.execute(select(TableType).where(TableType.is_active.is_(True)).order_by(TableType.name))
    return list(result.scalars().all())


async def create_table_type(db: AsyncSession, **fields) -> TableType:
    if await db.scalar(select(TableType.id).where(TableType.name == fields["name"])):
        raise ConflictError(f"Table type '{fields['name']}' already exists")
    table_type = TableType(**fields)
    db.add(table_type)
    await db.commit()
    await db.refresh(table_type)
    return table_type


async def _check_number_free(db: AsyncSession, table_number: str, exclude_id: Optional[int] = None) -> None:
    stmt = select(Table.id).where(Table.table_number == table_number)
    if exclude_id is not None:
        stmt = stmt.where(Table.id != exclude_id)
    if await db.scalar(stmt):
        raise ConflictError(f"Table number '{table_number}' is already taken")


async def _check_table_type(db: AsyncSession, table_type_id: Optional[int]) -> None:
    if table_type_id is not None and await db.get(TableType, table_type_id) is None:
        raise NotFoundError("Table type", table_type_id)


async def create_table(db: AsyncSession, **fields) -> Table:
    await _check_number_free(db, fields["table_number"])
    await _check_table_type(db, fields.get("table_type_id"))

    table = Table(**fields)
    db.add(table)
    await db.commit()
    await db.refresh(table)
    logger.info(f"Table {table.table_number} created (capacity {table.capacity})")
    return table


async def update_table(db: AsyncSession, table_id: int, **changes) -> Table:
    table = await get_table(db, table_id)

    if "table_number" in changes and changes["table_number"] != table.table_number:
        await _check_number_free(db, changes["table_number"], exclude_id=table.id)
    if "table_type_id" in changes:
        await _check_table_type(db, changes["table_type_id"])

    capacity = changes.get("capacity", table.capacity)
    min_capacity = changes.get("min_capacity", table.min_capacity)
    if min_capacity > capacity:
        raise BusinessRuleError("Minimum capacity cannot exceed capacity")

    for key, value in changes.items():
        setattr(table, key, value)
    await db.commit()
    await db.refresh(table)
    return table


async def delete_table(db: AsyncSession, table_id: int) -> None:
    table = await get_table(db, table_id)

    blocking = await db.scalar(
        select(func.count(Reservation.id)).where(
            Reservation.table_id == table.id,
            Reservation.status.in_(BLOCKING_RESERVATION_STATUSES),
        )
    )
    if blocking:
        raise BusinessRuleError("Cannot delete table with active reservations")

    active = await db.scalar(
        select(func.count(Order.id)).where(
            Order.table_id == table.id,
            Order.status.in_(ACTIVE_ORDER_STATUSES),
        )
    )
    if active:
        raise BusinessRuleError("Cannot delete table with an active order")

    await db.delete(table)
    await db.commit()
    logger.info(f"Table {table.table_number} deleted")


async def update_table_status(db: AsyncSession, table_id: int, status: TableStatus) -> Table:
    table = await get_table(db, table_id)
    table.status = status
    await db.commit()
    await db.refresh(table)
    return table


# =============================================================================
# AVAILABILITY
# =============================================================================

def overlap_clause(start: datetime, end: datetime):
    """SQL condition for reservations colliding with ``[start, end]``."""
    return or_(
        Reservation.reservation_date.between(start, end),
        Reservation.end_time.between(start, end),
        and_(Reservation.reservation_date <= start, Reservation.end_time >= end),
    )


async def has_conflict(
    db: AsyncSession,
    table_id: int,
    start: datetime,
    end: datetime,
    exclude_id: Optional[int] = None,
) -> bool:
    stmt = select(Reservation.id).where(
        Reservation.table_id == table_id,
        Reservation.status.in_(BLOCKING_RESERVATION_STATUSES),
        overlap_clause(start, end),
    )
    if exclude_id is not None:
        stmt = stmt.where(Reservation.id != exclude_id)
    return await db.scalar(stmt.limit(1)) is not None


async def find_available_tables(
    db: AsyncSession,
    start: datetime,
    end: datetime,
    party_size: int,
) -> list[Table]:
    """Available active tables that seat the party and are free for the slot."""
    busy = select(Reservation.table_id).where(
        Reservation.status.in_(BLOCKING_RESERVATION_STATUSES),
        overlap_clause(start, end),
    )
    result = await db.execute(
        select(Table)
        .where(
            Table.is_active.is_(True),
            Table.status == TableStatus.AVAILABLE,
            Table.min_capacity <= party_size,
            Table.capacity >= party_size,
            Table.id.not_in(busy),
        )
        .order_by(Table.capacity, Table.table_number)
    )
    return list(result.scalars().all())


async def upcoming_reservations(db: AsyncSession, table_id: int, limit: int = 10) -> list[Reservation]:
    result = await db.execute(
        select(Reservation)
        .where(
            Reservation.table_id == table_id,
            Reservation.status.in_(BLOCKING_RESERVATION_STATUSES),
            Reservation.reservation_date >= datetime.now(),
        )
        .order_by(Reservation.reservation_date)
        .limit(limit)
    )
    return list(result.scalars().all())
