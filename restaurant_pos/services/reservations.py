"""
Reservation Service

Booking rules:
- the slot must start in the future
- the party must fit the table
- the table must be free for ``[reservation_date, end_time]``

Each booking gets an 8 character confirmation code that is sent to the
guest by SMS and email.

Author: Khalil Bannouri
Version: 1.0.0
"""

import hashlib
import logging
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.config import get_settings
from restaurant_pos.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from restaurant_pos.models import Reservation, ReservationStatus, Table, User
from restaurant_pos.services.notifications.base import BaseNotificationService
from restaurant_pos.services.pagination import paginate
from restaurant_pos.services.tables import find_available_tables, get_table, has_conflict

logger = logging.getLogger(__name__)

# Listing starts this many days back
LIST_LOOKBACK_DAYS = 7


def confirmation_code_for(reservation_id: int, email: str) -> str:
    digest = hashlib.md5(f"{reservation_id}{email}".encode()).hexdigest()
    return digest[:8].upper()


async def get_reservation(db: AsyncSession, reservation_id: int) -> Reservation:
    reservation = await db.get(Reservation, reservation_id)
    if reservation is None:
        raise NotFoundError("Reservation", reservation_id)
    return reservation


async def list_reservations(
    db: AsyncSession,
    status: Optional[ReservationStatus] = None,
    page: int = 1,
    per_page: Optional[int] = None,
):
    since = datetime.now() - timedelta(days=LIST_LOOKBACK_DAYS)
    stmt = select(Reservation).where(Reservation.reservation_date >= since)
    if status is not None:
        stmt = stmt.where(Reservation.status == status)
    stmt = stmt.order_by(Reservation.reservation_date.desc(), Reservation.id.desc())
    return await paginate(db, stmt, page, per_page or get_settings().page_size)


def _check_party(table: Table, party_size: int) -> None:
    if party_size > table.capacity:
        raise BusinessRuleError(f"Table {table.table_number} seats at most {table.capacity} guests")


async def _check_slot(
    db: AsyncSession,
    table: Table,
    start: datetime,
    end: datetime,
    exclude_id: Optional[int] = None,
) -> None:
    if await has_conflict(db, table.id, start, end, exclude_id=exclude_id):
        raise ConflictError(f"Table {table.table_number} is already reserved for this time")


async def send_confirmation(notifier: Optional[BaseNotificationService], reservation: Reservation) -> None:
    if notifier is None:
        return
    result = await notifier.send_reservation_confirmation(
        customer_name=reservation.customer_name,
        customer_email=reservation.customer_email,
        customer_phone=reservation.customer_phone,
        confirmation_code=reservation.confirmation_code,
        reservation_date=reservation.reservation_date,
        party_size=reservation.party_size,
        table_number=reservation.table_number,
    )
    if not result.success:
        logger.warning(
            f"Confirmation for reservation #{reservation.id} not delivered: {result.error_message}"
        )


async def create_reservation(
    db: AsyncSession,
    data,
    user: Optional[User] = None,
    notifier: Optional[BaseNotificationService] = None,
) -> Reservation:
    start = data.reservation_date
    if start <= datetime.now():
        raise BusinessRuleError("Reservation date must be in the future")

    table = await get_table(db, data.table_id)
    if not table.is_active:
        raise BusinessRuleError(f"Table {table.table_number} is not in service")
    _check_party(table, data.party_size)

    end = start + timedelta(minutes=data.duration_minutes)
    await _check_slot(db, table, start, end)

    reservation = Reservation(
        table=table,
        table_id=table.id,
        user_id=user.id if user else None,
        customer_name=data.customer_name,
        customer_email=data.customer_email,
        customer_phone=data.customer_phone,
        party_size=data.party_size,
        reservation_date=start,
        end_time=end,
        duration_minutes=data.duration_minutes,
        special_requests=data.special_requests,
        deposit_amount=data.deposit_amount,
        is_walk_in=data.is_walk_in,
        status=ReservationStatus.PENDING,
    )
    db.add(reservation)
    await db.flush()

    reservation.confirmation_code = confirmation_code_for(reservation.id, reservation.customer_email)
    await db.commit()

    logger.info(
        f"Reservation #{reservation.id} ({reservation.confirmation_code}) for "
        f"{reservation.customer_name}, table {table.table_number} at {start:%Y-%m-%d %H:%M}"
    )
    await send_confirmation(notifier, reservation)
    return reservation


async def update_reservation(db: AsyncSession, reservation_id: int, data) -> Reservation:
    reservation = await get_reservation(db, reservation_id)
    changes = data.model_dump(exclude_unset=True)

    table = reservation.table
    if changes.get("table_id") is not None and changes["table_id"] != reservation.table_id:
        table = await get_table(db, changes["table_id"])

    start = changes.get("reservation_date") or reservation.reservation_date
    duration = changes.get("duration_minutes") or reservation.duration_minutes
    party_size = changes.get("party_size") or reservation.party_size
    end = start + timedelta(minutes=duration)

    if "reservation_date" in changes and start <= datetime.now():
        raise BusinessRuleError("Reservation date must be in the future")
    _check_party(table, party_size)

    moved = {"table_id", "reservation_date", "duration_minutes"} & changes.keys()
    if moved:
        await _check_slot(db, table, start, end, exclude_id=reservation.id)

    for key in ("customer_name", "customer_email", "customer_phone", "special_requests", "status"):
        if changes.get(key) is not None:
            setattr(reservation, key, changes[key])
    reservation.table = table
    reservation.table_id = table.id
    reservation.reservation_date = start
    reservation.duration_minutes = duration
    reservation.party_size = party_size
    reservation.end_time = end

    if changes.get("status") == ReservationStatus.CONFIRMED and reservation.confirmed_at is None:
        reservation.confirmed_at = datetime.now()
    if changes.get("status") == ReservationStatus.CANCELLED and reservation.cancelled_at is None:
        reservation.cancelled_at = datetime.now()

    await db.commit()
    await db.refresh(reservation)
    return reservation


async def cancel_reservation(db: AsyncSession, reservation_id: int) -> Reservation:
    reservation = await get_reservation(db, reservation_id)
    if reservation.status == ReservationStatus.CANCELLED:
        raise BusinessRuleError("Reservation is already cancelled")
    reservation.status = ReservationStatus.CANCELLED
    reservation.cancelled_at = datetime.now()
    await db.commit()
    logger.info(f"Reservation #{reservation.id} cancelled")
    return reservation


async def confirm_reservation(db: AsyncSession, reservation_id: int) -> Reservation:
    reservation = await get_reservation(db, reservation_id)
    if reservation.status != ReservationStatus.PENDING:
        raise BusinessRuleError(f"Only pending reservations can be confirmed (is {reservation.status.value})")
    reservation.status = ReservationStatus.CONFIRMED
    reservation.confirmed_at = datetime.now()
    await db.commit()
    logger.info(f"Reservation #{reservation.id} confirmed")
    return reservation


async def check_availability(
    db: AsyncSession,
    when: datetime,
    party_size: int,
    duration_minutes: int = 120,
) -> list[Table]:
    return await find_available_tables(db, when, when + timedelta(minutes=duration_minutes), party_size)


async def reservations_between(db: AsyncSession, start: datetime, end: datetime) -> list[Reservation]:
    result = await db.execute(
        select(Reservation)
        .where(Reservation.reservation_date >= start, Reservation.reservation_date < end)
        .order_by(Reservation.reservation_date, Reservation.id)
    )
    return list(result.scalars().all())


async def reservations_on(db: AsyncSession, day: date) -> list[Reservation]:
    start = datetime.combine(day, datetime.min.time())
    return await reservations_between(db, start, start + timedelta(days=1))
