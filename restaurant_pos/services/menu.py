"""
Menu Service

Categories, items, combos, modifiers and promotion codes.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.exceptions import BusinessRuleError, ConflictError, NotFoundError
from restaurant_pos.core.money import to_money
from restaurant_pos.models import (
    ComboItem,
    MenuCategory,
    MenuCombo,
    MenuItem,
    MenuModifier,
    OrderItem,
    Promotion,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CATEGORIES
# =============================================================================

async def list_categories(db: AsyncSession, active_only: bool = False) -> list[MenuCategory]:
    stmt = select(MenuCategory).order_by(MenuCategory.sort_order, MenuCategory.name)
    if active_only:
        stmt = stmt.where(MenuCategory.is_active.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_category(db: AsyncSession, category_id: int) -> MenuCategory:
    category = await db.get(MenuCategory, category_id)
    if category is None:
        raise NotFoundError("Category", category_id)
    return category


async def _check_category_name(db: AsyncSession, name: str, exclude_id: Optional[int] = None) -> None:
    stmt = select(MenuCategory.id).where(MenuCategory.name == name)
    if exclude_id is not None:
        stmt = stmt.where(MenuCategory.id != exclude_id)
    if await db.scalar(stmt):
        raise ConflictError(f"Category '{name}' already exists")


async def create_category(db: AsyncSession, **fields) -> MenuCategory:
    await _check_category_name(db, fields["name"])
    category = MenuCategory(**fields)
    db.add(category)
    await db.commit()
    await db.refresh(category)
    logger.info(f"Category '{category.name}' created")
    return category


async def update_category(db: AsyncSession, category_id: int, **changes) -> MenuCategory:
    category = await get_category(db, category_id)
    if changes.get("name") and changes["name"] != category.name:
        await _check_category_name(db, changes["name"], exclude_id=category.id)
    for key, value in changes.items():
        setattr(category, key, value)
    await db.commit()
    await db.refresh(category)
    return category


async def delete_category(db: AsyncSession, category_id: int) -> None:
    category = await get_category(db, category_id)
    count = await db.scalar(select(func.count(MenuItem.id)).where(MenuItem.category_id == category.id))
    if count:
        raise BusinessRuleError(f"Cannot delete category with {count} menu items")
    await db.delete(category)
    await db.commit()


async def category_items(db: AsyncSession, category_id: int, available_only: bool = True) -> list[MenuItem]:
    stmt = select(MenuItem).where(MenuItem.category_id == category_id).order_by(MenuItem.name)
    if available_only:
        stmt = stmt.where(MenuItem.is_available.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars().all())


# =============================================================================
# ITEMS
# =============================================================================

async def list_items(
    db: AsyncSession,
    category_id: Optional[int] = None,
    available_only: bool = False,
) -> list[MenuItem]:
    stmt = (
        select(MenuItem)
        .join(MenuCategory, MenuItem.category_id == MenuCategory.id)
        .order_by(MenuCategory.sort_order, MenuCategory.name, MenuItem.name)
    )
    if category_id is not None:
        stmt = stmt.where(MenuItem.category_id == category_id)
    if available_only:
        stmt = stmt.where(MenuItem.is_available.is_(True))
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_item(db: AsyncSession, item_id: int) -> MenuItem:
    item = await db.get(MenuItem, item_id)
    if item is None:
        raise NotFoundError("Menu item", item_id)
    return item


async def create_item(db: AsyncSession, **fields) -> MenuItem:
    await get_category(db, fields["category_id"])
    fields["price"] = to_money(fields["price"])
    item = MenuItem(**fields)
    db.add(item)
    await db.commit()
    await db.refresh(item)
    logger.info(f"Menu item '{item.name}' created at {item.formatted_price}")
    return item


async def update_item(db: AsyncSession, item_id: int, **changes) -> MenuItem:
    item = await get_item(db, item_id)
    if changes.get("category_id") is not None:
        await get_category(db, changes["category_id"])
    if changes.get("price") is not None:
        changes["price"] = to_money(changes["price"])
    for key, value in changes.items():
        setattr(item, key, value)
    await db.commit()
    await db.refresh(item)
    return item


async def delete_item(db: AsyncSession, item_id: int) -> None:
    item = await get_item(db, item_id)
    used = await db.scalar(select(func.count(OrderItem.id)).where(OrderItem.menu_item_id == item.id))
    if used:
        raise BusinessRuleError("Menu item appears on orders; mark it unavailable instead")
    await db.delete(item)
    await db.commit()


async def toggle_availability(db: AsyncSession, item_id: int) -> MenuItem:
    item = await get_item(db, item_id)
    item.is_available = not item.is_available
    await db.commit()
    logger.info(f"Menu item '{item.name}' {'available' if item.is_available else 'unavailable'}")
    return item


# =============================================================================
# COMBOS & MODIFIERS
# =============================================================================

async def list_combos(db: AsyncSession) -> list[MenuCombo]:
    result = await db.execute(
        select(MenuCombo)
        .where(MenuCombo.is_active.is_(True))
        .order_by(MenuCombo.sort_order, MenuCombo.name)
    )
    return list(result.scalars().all())


async def create_combo(db: AsyncSession, data) -> MenuCombo:
    for line in data.items:
        await get_item(db, line.menu_item_id)

    combo = MenuCombo(
        name=data.name,
        description=data.description,
        combo_price=to_money(data.combo_price),
        savings_amount=to_money(data.savings_amount),
        sort_order=data.sort_order,
        is_active=data.is_active,
    )
    for line in data.items:
        combo.items.append(
            ComboItem(menu_item_id=line.menu_item_id, quantity=line.quantity, is_required=line.is_required)
        )
    db.add(combo)
    await db.commit()

    result = await db.execute(
        select(MenuCombo).where(MenuCombo.id == combo.id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def list_modifiers(db: AsyncSession, menu_item_id: int) -> list[MenuModifier]:
    result = await db.execute(
        select(MenuModifier)
        .where(MenuModifier.menu_item_id == menu_item_id, MenuModifier.is_active.is_(True))
        .order_by(MenuModifier.name)
    )
    return list(result.scalars().all())


async def create_modifier(db: AsyncSession, **fields) -> MenuModifier:
    await get_item(db, fields["menu_item_id"])
    fields["price_adjustment"] = to_money(fields.get("price_adjustment") or Decimal("0"))
    modifier = MenuModifier(**fields)
    db.add(modifier)
    await db.commit()
    await db.refresh(modifier)
    return modifier


# =============================================================================
# PROMOTIONS
# =============================================================================

async def list_promotions(db: AsyncSession) -> list[Promotion]:
    result = await db.execute(select(Promotion).order_by(Promotion.start_time.desc(), Promotion.id.desc()))
    return list(result.scalars().all())


async def create_promotion(db: AsyncSession, **fields) -> Promotion:
    if await db.scalar(select(Promotion.id).where(Promotion.name == fields["name"])):
        raise ConflictError(f"Promotion '{fields['name']}' already exists")
    fields["discount_value"] = to_money(fields["discount_value"])
    promotion = Promotion(usage_count=0, **fields)
    db.add(promotion)
    await db.commit()
    await db.refresh(promotion)
    logger.info(f"Promotion '{promotion.name}' created")
    return promotion
