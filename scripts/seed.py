"""
Demo Data Seeder

Creates the schema and fills an empty database with accounts, a menu,
the floor plan and an active tax rule, so the API can be exercised
straight away.
Run from project root: python scripts/seed.py

Author: Khalil Bannouri
Version: 1.0.0
"""

import asyncio
import logging
import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from sqlalchemy import func, select

from restaurant_pos.core.config import setup_logging
from restaurant_pos.core.security import hash_password
from restaurant_pos.database import async_session_maker, engine, init_db
from restaurant_pos.models import (
    ComboItem,
    MenuCategory,
    MenuCombo,
    MenuItem,
    Table,
    TableType,
    TaxSetting,
    TaxType,
    User,
    UserRole,
)

logger = logging.getLogger("restaurant_pos.seed")

DEFAULT_PASSWORD = "password123"

ACCOUNTS = [
    ("Front Desk", "staff@restaurant.com", UserRole.STAFF),
    ("Head Chef", "chef@restaurant.com", UserRole.KITCHEN),
    ("Line Cook", "cook@restaurant.com", UserRole.KITCHEN),
    ("Regular Guest", "guest@example.com", UserRole.CUSTOMER),
]

MENU = {
    "Starters": [
        ("Garlic Bread", "5.99", 8),
        ("Caesar Salad", "8.99", 10),
        ("Tomato Soup", "6.50", 8),
    ],
    "Mains": [
        ("Pizza Margherita", "14.99", 18),
        ("Pasta Carbonara", "13.99", 15),
        ("Grilled Salmon", "21.50", 20),
    ],
    "Desserts": [
        ("Tiramisu", "7.99", 5),
        ("Chocolate Fondant", "8.50", 12),
    ],
    "Drinks": [
        ("Sparkling Water", "3.49", 1),
        ("Lemonade", "3.99", 2),
        ("Espresso", "2.80", 2),
    ],
}

TABLE_TYPES = [
    ("Standard", "1.00"),
    ("Booth", "1.00"),
    ("Terrace", "1.10"),
]

# number, type, capacity, location, (x, y)
FLOOR = [
    ("T1", "Standard", 2, "Window", (1, 1)),
    ("T2", "Standard", 2, "Window", (2, 1)),
    ("T3", "Standard", 4, "Main hall", (1, 2)),
    ("T4", "Standard", 4, "Main hall", (2, 2)),
    ("B1", "Booth", 6, "Back wall", (4, 1)),
    ("B2", "Booth", 6, "Back wall", (4, 2)),
    ("P1", "Terrace", 8, "Terrace", (6, 1)),
]


async def seed() -> bool:
    await init_db()

    async with async_session_maker() as db:
        if await db.scalar(select(func.count(User.id))):
            logger.info("⚠️ Database already has users, nothing to seed")
            return False

        accounts = []
        for name, email, role in ACCOUNTS:
            user = User(name=name, email=email, role=role, password_hash=hash_password(DEFAULT_PASSWORD))
            db.add(user)
            accounts.append(user)
        await db.flush()
        # The front desk account owns the kitchen accounts it can assign to
        for user in accounts[1:3]:
            user.created_by = accounts[0].id

        items_by_name = {}
        for sort_order, (category_name, rows) in enumerate(MENU.items()):
            category = MenuCategory(name=category_name, sort_order=sort_order)
            db.add(category)
            for name, price, minutes in rows:
                item = MenuItem(category=category, name=name, price=Decimal(price), preparation_time=minutes)
                db.add(item)
                items_by_name[name] = item

        combo = MenuCombo(
            name="Lunch Deal",
            description="Soup, pizza and a lemonade",
            combo_price=Decimal("21.00"),
            savings_amount=Decimal("4.48"),
        )
        combo.items = [
            ComboItem(menu_item=items_by_name["Tomato Soup"], quantity=1),
            ComboItem(menu_item=items_by_name["Pizza Margherita"], quantity=1),
            ComboItem(menu_item=items_by_name["Lemonade"], quantity=1),
        ]
        db.add(combo)

        types = {}
        for name, multiplier in TABLE_TYPES:
            types[name] = TableType(name=name, price_multiplier=Decimal(multiplier))
            db.add(types[name])

        for number, type_name, capacity, location, (x, y) in FLOOR:
            db.add(Table(
                table_number=number,
                name=f"Table {number}",
                table_type=types[type_name],
                capacity=capacity,
                min_capacity=1,
                location=location,
                position_x=x,
                position_y=y,
            ))

        db.add(TaxSetting(name="Sales Tax", type=TaxType.MANUAL, tax_rate=Decimal("8.50"), is_active=True))

        await db.commit()

    logger.info("=" * 60)
    logger.info("✅ Seed complete")
    logger.info(f"   Accounts: {len(ACCOUNTS)} (password: {DEFAULT_PASSWORD})")
    logger.info(f"   Menu items: {sum(len(rows) for rows in MENU.values())}")
    logger.info(f"   Tables: {len(FLOOR)}")
    logger.info("=" * 60)
    return True


async def main() -> None:
    try:
        await seed()
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(main())
