"""
Authentication & Role Guards

Bearer-token authentication for staff, kitchen and customer accounts.
Passwords are hashed with werkzeug; access tokens are signed JWTs.

Usage:
    @router.get("/kitchen")
    async def board(user: User = Depends(require_roles(UserRole.KITCHEN, UserRole.STAFF))):
        ...
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from restaurant_pos.core.config import get_settings
from restaurant_pos.database import get_db
from restaurant_pos.models import User, UserRole

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(user_id: int, role: str, expires_minutes: Optional[int] = None) -> str:
    """
    Issue a signed access token for a user.

    Args:
        user_id: Subject of the token
        role: Role claim, informational only (the DB row is authoritative)
        expires_minutes: Override for the configured lifetime
    """
    settings = get_settings()
    lifetime = expires_minutes or settings.access_token_expire_minutes
    payload = {
        "sub": str(user_id),
        "role": role,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=lifetime),
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user, or fail with 401."""
    if not token:
        raise _unauthorized("Not authenticated")

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError) as e:
        logger.warning(f"Rejected access token: {e}")
        raise _unauthorized("Could not validate token")

    user = await db.get(User, user_id)
    if user is None:
        raise _unauthorized("Could not validate token")
    if not user.is_active:
        raise _unauthorized("Your account has been deactivated")
    return user


def require_roles(*roles: UserRole):
    """Dependency factory: allow only users holding one of ``roles``."""
    allowed = {UserRole(r) for r in roles}

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have access to this area",
            )
        return user

    return checker
