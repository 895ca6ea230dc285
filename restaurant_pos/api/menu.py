"""
Menu endpoints: categories, items, combos, modifiers and promotions.

Any signed-in user may read the menu; changes are staff only.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import any_user, staff_only
from restaurant_pos.database import get_db
from restaurant_pos.models import User
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import (
    CategoryCreate,
    CategoryDetail,
    CategoryResponse,
    CategoryUpdate,
    ComboCreate,
    ComboResponse,
    MenuItemCreate,
    MenuItemResponse,
    MenuItemUpdate,
    ModifierCreate,
    ModifierResponse,
    PromotionCreate,
    PromotionResponse,
)
from restaurant_pos.services import menu as menu_service

router = APIRouter(prefix="/menu", tags=["Menu"])


# =============================================================================
# CATEGORIES
# =============================================================================

@router.get("/categories", summary="Categories Page")
async def categories(
    request: Request,
    user: User = Depends(any_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    rows = await menu_service.list_categories(db)
    return await render_page(request, db, user, "Menu/Categories", {
        "categories": [CategoryResponse.model_validate(c) for c in rows],
    })


@router.post("/categories", status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    category = await menu_service.create_category(db, **data.model_dump())
    return action_result("Category created successfully", category=CategoryResponse.model_validate(category))


@router.get("/categories/{category_id}", response_model=CategoryDetail)
async def show_category(
    category_id: int,
    user: User = Depends(any_user),
    db: AsyncSession = Depends(get_db),
) -> CategoryDetail:
    """A category with its available items."""
    category = await menu_service.get_category(db, category_id)
    items = await menu_service.category_items(db, category.id)
    return CategoryDetail(
        **CategoryResponse.model_validate(category).model_dump(),
        items=[MenuItemResponse.model_validate(i) for i in items],
    )


@router.put("/categories/{category_id}")
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    category = await menu_service.update_category(db, category_id, **data.model_dump(exclude_unset=True))
    return action_result("Category updated successfully", category=CategoryResponse.model_validate(category))


@router.delete("/categories/{category_id}")
async def delete_category(
    category_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await menu_service.delete_category(db, category_id)
    return action_result("Category deleted successfully")


# =============================================================================
# ITEMS
# =============================================================================

@router.get("/items", summary="Menu Page")
async def items(
    request: Request,
    category_id: Optional[int] = Query(None),
    available: bool = Query(False, description="Only items currently available"),
    user: User = Depends(any_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    rows = await menu_service.list_items(db, category_id, available_only=available)
    return await render_page(request, db, user, "Menu/Index", {
        "items": [MenuItemResponse.model_validate(i) for i in rows],
        "categories": [CategoryResponse.model_validate(c) for c in await menu_service.list_categories(db, active_only=True)],
        "filters": {"category_id": category_id, "available": available},
    })


@router.post("/items", status_code=status.HTTP_201_CREATED)
async def create_item(
    data: MenuItemCreate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    item = await menu_service.create_item(db, **data.model_dump())
    return action_result("Menu item created successfully", item=MenuItemResponse.model_validate(item))


@router.get("/items/{item_id}", response_model=MenuItemResponse)
async def show_item(
    item_id: int,
    user: User = Depends(any_user),
    db: AsyncSession = Depends(get_db),
) -> MenuItemResponse:
    return MenuItemResponse.model_validate(await menu_service.get_item(db, item_id))


@router.put("/items/{item_id}")
async def update_item(
    item_id: int,
    data: MenuItemUpdate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    item = await menu_service.update_item(db, item_id, **data.model_dump(exclude_unset=True))
    return action_result("Menu item updated successfully", item=MenuItemResponse.model_validate(item))


@router.delete("/items/{item_id}")
async def delete_item(
    item_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await menu_service.delete_item(db, item_id)
    return action_result("Menu item deleted successfully")


@router.post("/items/{item_id}/toggle-availability")
async def toggle_availability(
    item_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    item = await menu_service.toggle_availability(db, item_id)
    state = "available" if item.is_available else "unavailable"
    return action_result(f"{item.name} is now {state}", item=MenuItemResponse.model_validate(item))


@router.get("/items/{item_id}/modifiers", response_model=list[ModifierResponse])
async def modifiers(
    item_id: int,
    user: User = Depends(any_user),
    db: AsyncSession = Depends(get_db),
) -> list[ModifierResponse]:
    await menu_service.get_item(db, item_id)
    return [ModifierResponse.model_validate(m) for m in await menu_service.list_modifiers(db, item_id)]


@router.post("/modifiers", status_code=status.HTTP_201_CREATED)
async def create_modifier(
    data: ModifierCreate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    modifier = await menu_service.create_modifier(db, **data.model_dump())
    return action_result("Modifier created successfully", modifier=ModifierResponse.model_validate(modifier))


# =============================================================================
# COMBOS & PROMOTIONS
# =============================================================================

@router.get("/combos", response_model=list[ComboResponse])
async def combos(
    user: User = Depends(any_user),
    db: AsyncSession = Depends(get_db),
) -> list[ComboResponse]:
    return [ComboResponse.model_validate(c) for c in await menu_service.list_combos(db)]


@router.post("/combos", status_code=status.HTTP_201_CREATED)
async def create_combo(
    data: ComboCreate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    combo = await menu_service.create_combo(db, data)
    return action_result("Combo created successfully", combo=ComboResponse.model_validate(combo))


@router.get("/promotions", response_model=list[PromotionResponse])
async def promotions(
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> list[PromotionResponse]:
    return [PromotionResponse.model_validate(p) for p in await menu_service.list_promotions(db)]


@router.post("/promotions", status_code=status.HTTP_201_CREATED)
async def create_promotion(
    data: PromotionCreate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    promotion = await menu_service.create_promotion(db, **data.model_dump())
    return action_result("Promotion created successfully", promotion=PromotionResponse.model_validate(promotion))
