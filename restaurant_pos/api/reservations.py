"""
Reservation endpoints.

Staff manage every booking; customers may book for themselves.
"""

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import get_notification_service, staff_only
from restaurant_pos.core.security import require_roles
from restaurant_pos.database import get_db
from restaurant_pos.models import ReservationStatus, User, UserRole
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import (
    ReservationCreate,
    ReservationResponse,
    ReservationUpdate,
    TableResponse,
)
from restaurant_pos.services import reservations as reservation_service
from restaurant_pos.services.notifications.base import BaseNotificationService

router = APIRouter(prefix="/reservations", tags=["Reservations"])

staff_or_customer = require_roles(UserRole.STAFF, UserRole.CUSTOMER)


@router.get("", summary="Reservations Page")
async def index(
    request: Request,
    status_filter: Optional[ReservationStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Bookings from the last week onward, newest first."""
    rows, pagination = await reservation_service.list_reservations(db, status_filter, page)
    return await render_page(request, db, user, "Reservations/Index", {
        "reservations": [ReservationResponse.model_validate(r) for r in rows],
        "pagination": pagination,
        "filters": {"status": status_filter},
    })


@router.get("/availability")
async def availability(
    when: datetime = Query(..., alias="date"),
    party_size: int = Query(..., ge=1, le=20),
    duration: int = Query(120, ge=30, le=480),
    user: User = Depends(staff_or_customer),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    if when.tzinfo is not None:
        when = when.astimezone().replace(tzinfo=None)
    tables = await reservation_service.check_availability(db, when, party_size, duration)
    return action_result(
        f"{len(tables)} tables available",
        tables=[TableResponse.model_validate(t) for t in tables],
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create(
    data: ReservationCreate,
    user: User = Depends(staff_or_customer),
    db: AsyncSession = Depends(get_db),
    notifier: BaseNotificationService = Depends(get_notification_service),
) -> dict[str, Any]:
    reservation = await reservation_service.create_reservation(db, data, user=user, notifier=notifier)
    return action_result(
        f"Reservation created. Confirmation code: {reservation.confirmation_code}",
        reservation=ReservationResponse.model_validate(reservation),
    )


@router.get("/{reservation_id}")
async def show(
    reservation_id: int,
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    reservation = await reservation_service.get_reservation(db, reservation_id)
    return await render_page(request, db, user, "Reservations/Show", {
        "reservation": ReservationResponse.model_validate(reservation),
    })


@router.put("/{reservation_id}")
async def update(
    reservation_id: int,
    data: ReservationUpdate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    reservation = await reservation_service.update_reservation(db, reservation_id, data)
    return action_result("Reservation updated successfully", reservation=ReservationResponse.model_validate(reservation))


@router.post("/{reservation_id}/cancel")
async def cancel(
    reservation_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    reservation = await reservation_service.cancel_reservation(db, reservation_id)
    return action_result("Reservation cancelled", reservation=ReservationResponse.model_validate(reservation))


@router.post("/{reservation_id}/confirm")
async def confirm(
    reservation_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    reservation = await reservation_service.confirm_reservation(db, reservation_id)
    return action_result("Reservation confirmed", reservation=ReservationResponse.model_validate(reservation))
