"""
Page Props Bridge

Every screen of the frontend is served as a JSON envelope:

    {
        "component": "Orders/Index",
        "props": {...},
        "url": "/orders?page=2",
        "version": "1.0.0"
    }

Props are built from the response schemas so each page has a typed
contract. Every page also carries the shared ``auth.user`` and
``tax.active`` props.

Author: Khalil Bannouri
Version: 1.0.0
"""

import enum
from decimal import Decimal
from typing import Any, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.config import get_settings
from restaurant_pos.models import User
from restaurant_pos.schemas import TaxSettingResponse, UserBrief
from restaurant_pos.services.tax import get_active_tax


def page_props(value: Any) -> Any:
    """JSON-ready props; schema money fields stay strings."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, dict):
        return {str(k): page_props(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [page_props(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    return jsonable_encoder(value)


async def shared_props(db: AsyncSession, user: Optional[User]) -> dict[str, Any]:
    active = await get_active_tax(db)
    return {
        "auth": {"user": UserBrief.model_validate(user) if user else None},
        "tax": {"active": TaxSettingResponse.model_validate(active) if active else None},
    }


async def render_page(
    request: Request,
    db: AsyncSession,
    user: Optional[User],
    component: str,
    props: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    url = request.url.path
    if request.url.query:
        url = f"{url}?{request.url.query}"
    return {
        "component": component,
        "props": page_props({**await shared_props(db, user), **(props or {})}),
        "url": url,
        "version": get_settings().app_version,
    }


def action_result(message: str, success: bool = True, **payload: Any) -> dict[str, Any]:
    """Plain JSON reply of action endpoints."""
    return {"success": success, "message": message, **page_props(payload)}
