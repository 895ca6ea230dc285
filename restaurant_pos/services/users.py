"""
User accounts: staff management, login and self-service profile.
"""

import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.config import get_settings
from restaurant_pos.core.exceptions import (
    BusinessRuleError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
)
from restaurant_pos.core.security import hash_password, verify_password
from restaurant_pos.models import User, UserRole
from restaurant_pos.services.pagination import paginate

logger = logging.getLogger(__name__)


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


async def _check_email_free(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> None:
    stmt = select(User.id).where(func.lower(User.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if await db.scalar(stmt):
        raise ConflictError(f"Email {email} is already registered")


async def authenticate(db: AsyncSession, email: str, password: str) -> Optional[User]:
    """The matching user when the password checks out, else None."""
    user = await db.scalar(select(User).where(func.lower(User.email) == email.lower()))
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


async def list_users(
    db: AsyncSession,
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = 1,
):
    stmt = select(User)
    if role is not None:
        stmt = stmt.where(User.role == role)
    if is_active is not None:
        stmt = stmt.where(User.is_active.is_(is_active))
    if search:
        pattern = f"%{search.lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(User.name).like(pattern),
                func.lower(User.email).like(pattern),
                User.phone.like(f"%{search}%"),
            )
        )
    stmt = stmt.order_by(User.created_at.desc(), User.id.desc())
    return await paginate(db, stmt, page, get_settings().page_size)


async def users_by_role(db: AsyncSession, role: UserRole, active_only: bool = True) -> list[User]:
    stmt = select(User).where(User.role == role)
    if active_only:
        stmt = stmt.where(User.is_active.is_(True))
    result = await db.execute(stmt.order_by(User.name))
    return list(result.scalars().all())


async def create_user(db: AsyncSession, data, creator: Optional[User] = None) -> User:
    await _check_email_free(db, data.email)
    user = User(
        name=data.name,
        email=data.email,
        phone=data.phone,
        password_hash=hash_password(data.password),
        role=data.role,
        is_active=data.is_active,
        created_by=creator.id if creator else None,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    logger.info(f"User {user.email} created as {user.role.value}")
    return user


async def update_user(db: AsyncSession, user_id: int, data) -> User:
    user = await get_user(db, user_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    if "email" in changes and changes["email"] != user.email:
        await _check_email_free(db, changes["email"], exclude_id=user.id)
    password = changes.pop("password", None)
    if password:
        user.password_hash = hash_password(password)
    for key, value in changes.items():
        setattr(user, key, value)

    await db.commit()
    await db.refresh(user)
    return user


def _check_manageable(actor: User, target: User, action: str) -> None:
    if target.id == actor.id:
        raise BusinessRuleError(f"You cannot {action} your own account")
    if target.created_by != actor.id:
        raise PermissionDeniedError(f"You can only {action} users you created")


async def delete_user(db: AsyncSession, user_id: int, actor: User) -> None:
    user = await get_user(db, user_id)
    _check_manageable(actor, user, "delete")
    await db.delete(user)
    await db.commit()
    logger.info(f"User {user.email} deleted by {actor.email}")


async def toggle_active(db: AsyncSession, user_id: int, actor: User) -> User:
    user = await get_user(db, user_id)
    if user.id == actor.id:
        raise BusinessRuleError("You cannot deactivate your own account")
    user.is_active = not user.is_active
    await db.commit()
    await db.refresh(user)
    logger.info(f"User {user.email} {'activated' if user.is_active else 'deactivated'}")
    return user


async def update_profile(db: AsyncSession, user: User, data) -> User:
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "email" in changes and changes["email"] != user.email:
        await _check_email_free(db, changes["email"], exclude_id=user.id)
    for key, value in changes.items():
        setattr(user, key, value)
    await db.commit()
    await db.refresh(user)
    return user


async def change_password(db: AsyncSession, user: User, current_password: str, new_password: str) -> None:
    if not verify_password(current_password, user.password_hash):
        raise BusinessRuleError("The current password is incorrect")
    user.password_hash = hash_password(new_password)
    await db.commit()
