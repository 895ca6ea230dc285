"""
Customer loyalty points and tiers.

Tiers follow the points balance:

    balance >= 1000  Gold
    balance >= 500   Silver
    balance >= 100   Bronze
    otherwise        Standard
"""

import logging
import math
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.exceptions import BusinessRuleError, NotFoundError
from restaurant_pos.core.money import ZERO, to_money
from restaurant_pos.models import CustomerLoyaltyPoint, User

logger = logging.getLogger(__name__)

TIERS = (
    (1000, "Gold"),
    (500, "Silver"),
    (100, "Bronze"),
    (0, "Standard"),
)

BENEFITS = {
    "Standard": {"points_per_unit": 1, "birthday_bonus": 0, "free_delivery": False, "priority_seating": False},
    "Bronze": {"points_per_unit": 1.5, "birthday_bonus": 50, "free_delivery": False, "priority_seating": False},
    "Silver": {"points_per_unit": 2, "birthday_bonus": 100, "free_delivery": True, "priority_seating": False},
    "Gold": {"points_per_unit": 3, "birthday_bonus": 200, "free_delivery": True, "priority_seating": True},
}


def tier_for(balance: int) -> str:
    for threshold, name in TIERS:
        if balance >= threshold:
            return name
    return "Standard"


def benefits_for(tier: str) -> dict:
    return dict(BENEFITS.get(tier, BENEFITS["Standard"]))


def points_for_amount(amount, tier: str = "Standard") -> int:
    """Whole points earned on ``amount`` at the tier's rate."""
    rate = Decimal(str(benefits_for(tier)["points_per_unit"]))
    return int(math.floor(Decimal(str(amount)) * rate))


def describe(record: CustomerLoyaltyPoint) -> dict:
    """Record fields plus tier and benefits, shaped for ``LoyaltyResponse``."""
    tier = tier_for(record.points_balance)
    return {
        "customer_id": record.customer_id,
        "points_earned": record.points_earned,
        "points_redeemed": record.points_redeemed,
        "points_balance": record.points_balance,
        "total_spent": record.total_spent,
        "visits_count": record.visits_count,
        "last_visit_date": record.last_visit_date,
        "tier": tier,
        "benefits": benefits_for(tier),
    }


async def get_account(db: AsyncSession, customer_id: int) -> Optional[CustomerLoyaltyPoint]:
    return await db.scalar(select(CustomerLoyaltyPoint).where(CustomerLoyaltyPoint.customer_id == customer_id))


async def get_or_create_account(db: AsyncSession, customer_id: int) -> CustomerLoyaltyPoint:
    record = await get_account(db, customer_id)
    if record is None:
        if await db.get(User, customer_id) is None:
            raise NotFoundError("Customer", customer_id)
        record = CustomerLoyaltyPoint(
            customer_id=customer_id,
            points_earned=0,
            points_redeemed=0,
            points_balance=0,
            total_spent=ZERO,
            visits_count=0,
        )
        db.add(record)
    return record


async def add_points(db: AsyncSession, customer_id: int, points: int, amount_spent=ZERO) -> CustomerLoyaltyPoint:
    """Credit points for a visit. Staged on the session; the caller commits."""
    record = await get_or_create_account(db, customer_id)
    record.points_earned += points
    record.points_balance += points
    record.total_spent = to_money(Decimal(record.total_spent) + to_money(amount_spent))
    record.visits_count += 1
    record.last_visit_date = datetime.now()
    logger.info(f"Customer #{customer_id} earned {points} points (balance {record.points_balance})")
    return record


async def redeem_points(db: AsyncSession, customer_id: int, points: int) -> CustomerLoyaltyPoint:
    record = await get_account(db, customer_id)
    balance = record.points_balance if record else 0
    if record is None or balance < points:
        raise BusinessRuleError(f"Insufficient points: balance is {balance}, requested {points}")
    record.points_redeemed += points
    record.points_balance -= points
    logger.info(f"Customer #{customer_id} redeemed {points} points")
    return record


async def award_for_bill(db: AsyncSession, customer_id: int, total_amount) -> int:
    """Points for a paid bill at the customer's current tier; returns points earned."""
    record = await get_or_create_account(db, customer_id)
    points = points_for_amount(total_amount, tier_for(record.points_balance or 0))
    await add_points(db, customer_id, points, total_amount)
    return points
