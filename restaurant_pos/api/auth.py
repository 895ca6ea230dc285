"""
Login and self-service account endpoints.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import any_user
from restaurant_pos.core.security import create_access_token
from restaurant_pos.database import get_db
from restaurant_pos.models import User
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import (
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    TokenResponse,
    UserBrief,
    UserResponse,
)
from restaurant_pos.services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/login", response_model=TokenResponse, summary="Log In")
async def login(data: LoginRequest, db: AsyncSession = Depends(get_db)) -> TokenResponse:
    """Exchange email and password for a bearer token."""
    user = await user_service.authenticate(db, data.email, data.password)
    if user is None:
        logger.info(f"Failed login for {data.email}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Your account has been deactivated")

    token = create_access_token(user.id, user.role.value)
    logger.info(f"{user.email} logged in")
    return TokenResponse(access_token=token, user=UserBrief.model_validate(user))


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(any_user)) -> UserResponse:
    return UserResponse.model_validate(user)


@router.get("/profile")
async def profile_page(
    request: Request,
    user: User = Depends(any_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    return await render_page(request, db, user, "Profile/Edit", {"user": UserResponse.model_validate(user)})


@router.put("/profile")
async def update_profile(
    data: ProfileUpdate,
    user: User = Depends(any_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    user = await user_service.update_profile(db, user, data)
    return action_result("Profile updated successfully", user=UserResponse.model_validate(user))


@router.put("/password")
async def change_password(
    data: PasswordChange,
    user: User = Depends(any_user),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await user_service.change_password(db, user, data.current_password, data.password)
    return action_result("Password updated successfully")
