"""Offset pagination for listing pages."""

import math

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from restaurant_pos.schemas import Pagination


async def paginate(db: AsyncSession, stmt: Select, page: int, per_page: int) -> tuple[list, Pagination]:
    """Run ``stmt`` for one page; ``stmt`` must already carry its ORDER BY."""
    page = max(page, 1)
    total = await db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    result = await db.execute(stmt.offset((page - 1) * per_page).limit(per_page))
    items = list(result.scalars().all())
    return items, Pagination(
        page=page,
        per_page=per_page,
        total=total or 0,
        last_page=max(math.ceil((total or 0) / per_page), 1),
    )
