"""
Loyalty endpoints. Customers read their own account; staff read and adjust
any customer's points.
"""

from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import staff_only
from restaurant_pos.core.security import require_roles
from restaurant_pos.database import get_db
from restaurant_pos.models import User, UserRole
from restaurant_pos.pages import action_result
from restaurant_pos.schemas import LoyaltyResponse, PointsRequest
from restaurant_pos.services import loyalty

router = APIRouter(prefix="/loyalty", tags=["Loyalty"])

customer_only = require_roles(UserRole.CUSTOMER)


@router.get("/me", response_model=LoyaltyResponse)
async def my_points(
    user: User = Depends(customer_only),
    db: AsyncSession = Depends(get_db),
) -> LoyaltyResponse:
    record = await loyalty.get_or_create_account(db, user.id)
    await db.commit()
    return LoyaltyResponse(**loyalty.describe(record))


@router.get("/{customer_id}", response_model=LoyaltyResponse)
async def show(
    customer_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> LoyaltyResponse:
    record = await loyalty.get_or_create_account(db, customer_id)
    await db.commit()
    return LoyaltyResponse(**loyalty.describe(record))


@router.post("/{customer_id}/add")
async def add_points(
    customer_id: int,
    data: PointsRequest,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    record = await loyalty.add_points(db, customer_id, data.points, data.amount_spent)
    await db.commit()
    return action_result(
        f"{data.points} points added",
        loyalty=LoyaltyResponse(**loyalty.describe(record)),
    )


@router.post("/{customer_id}/redeem")
async def redeem_points(
    customer_id: int,
    data: PointsRequest,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    record = await loyalty.redeem_points(db, customer_id, data.points)
    await db.commit()
    return action_result(
        f"{data.points} points redeemed",
        loyalty=LoyaltyResponse(**loyalty.describe(record)),
    )
