"""
Staff-only user management.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import staff_only
from restaurant_pos.database import get_db
from restaurant_pos.models import User, UserRole
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import UserCreate, UserResponse, UserUpdate
from restaurant_pos.services import users as user_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("", summary="Users Page")
async def index(
    request: Request,
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    users, pagination = await user_service.list_users(db, role, is_active, search, page)
    return await render_page(request, db, user, "Users/Index", {
        "users": [UserResponse.model_validate(u) for u in users],
        "pagination": pagination,
        "filters": {"role": role, "is_active": is_active, "search": search},
        "roles": [r.value for r in UserRole],
    })


@router.post("", status_code=status.HTTP_201_CREATED)
async def create(
    data: UserCreate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    created = await user_service.create_user(db, data, creator=user)
    return action_result("User created successfully", user=UserResponse.model_validate(created))


@router.get("/role/{role}", response_model=list[UserResponse])
async def by_role(
    role: UserRole,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> list[UserResponse]:
    return [UserResponse.model_validate(u) for u in await user_service.users_by_role(db, role)]


@router.get("/{user_id}")
async def show(
    user_id: int,
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    target = await user_service.get_user(db, user_id)
    return await render_page(request, db, user, "Users/Show", {"user": UserResponse.model_validate(target)})


@router.put("/{user_id}")
async def update(
    user_id: int,
    data: UserUpdate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    updated = await user_service.update_user(db, user_id, data)
    return action_result("User updated successfully", user=UserResponse.model_validate(updated))


@router.delete("/{user_id}")
async def delete(
    user_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await user_service.delete_user(db, user_id, actor=user)
    return action_result("User deleted successfully")


@router.post("/{user_id}/toggle-active")
async def toggle_active(
    user_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    target = await user_service.toggle_active(db, user_id, actor=user)
    state = "activated" if target.is_active else "deactivated"
    return action_result(f"User {state} successfully", user=UserResponse.model_validate(target))
