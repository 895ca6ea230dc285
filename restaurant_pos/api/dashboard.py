"""
Front-of-house dashboard endpoints (staff).
"""

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import staff_only
from restaurant_pos.database import get_db
from restaurant_pos.models import User
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import ReservationResponse, TableResponse
from restaurant_pos.services import dashboard

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


def _reservations(rows) -> list[ReservationResponse]:
    return [ReservationResponse.model_validate(r) for r in rows]


@router.get("", summary="Dashboard Page")
async def index(
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    data = await dashboard.cafe_dashboard(db)
    return await render_page(request, db, user, "Dashboard/Index", {
        "stats": data["stats"],
        "today_reservations": _reservations(data["today_reservations"]),
        "recent_reservations": _reservations(data["recent_reservations"]),
        "tables": [TableResponse.model_validate(t) for t in data["tables"]],
    })


@router.get("/floor-plan")
async def floor_plan(
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    return action_result("Floor plan", tables=await dashboard.floor_plan(db))


@router.get("/calendar")
async def calendar(
    day: Optional[date] = Query(None, alias="date"),
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    data = await dashboard.calendar(db, day or date.today())
    return action_result(
        f"Reservations on {data['date']}",
        date=data["date"],
        reservations=_reservations(data["reservations"]),
        by_hour={hour: _reservations(rows) for hour, rows in data["by_hour"].items()},
    )


@router.get("/analytics")
async def analytics(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    data = await dashboard.reservation_analytics(db, date_from, date_to)
    return action_result("Reservation analytics", **data)
