"""
Table and table type management (staff).
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import staff_only
from restaurant_pos.database import get_db
from restaurant_pos.models import User
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import (
    ReservationResponse,
    TableCreate,
    TableDetail,
    TableResponse,
    TableStatusUpdate,
    TableTypeCreate,
    TableTypeResponse,
    TableUpdate,
)
from restaurant_pos.services import tables as table_service

router = APIRouter(prefix="/tables", tags=["Tables"])


@router.get("", summary="Tables Page")
async def index(
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    tables = await table_service.list_tables(db)
    types = await table_service.list_table_types(db)
    return await render_page(request, db, user, "Tables/Index", {
        "tables": [TableResponse.model_validate(t) for t in tables],
        "table_types": [TableTypeResponse.model_validate(t) for t in types],
    })


@router.post("", status_code=status.HTTP_201_CREATED)
async def create(
    data: TableCreate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    table = await table_service.create_table(db, **data.model_dump())
    return action_result("Table created successfully", table=TableResponse.model_validate(table))


@router.get("/types", response_model=list[TableTypeResponse])
async def table_types(
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> list[TableTypeResponse]:
    return [TableTypeResponse.model_validate(t) for t in await table_service.list_table_types(db)]


@router.post("/types", status_code=status.HTTP_201_CREATED)
async def create_table_type(
    data: TableTypeCreate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    table_type = await table_service.create_table_type(db, **data.model_dump())
    return action_result("Table type created successfully", table_type=TableTypeResponse.model_validate(table_type))


@router.get("/{table_id}")
async def show(
    table_id: int,
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """A table with its upcoming pending/confirmed reservations."""
    table = await table_service.get_table(db, table_id)
    upcoming = await table_service.upcoming_reservations(db, table.id)
    detail = TableDetail(
        **TableResponse.model_validate(table).model_dump(),
        upcoming_reservations=[ReservationResponse.model_validate(r) for r in upcoming],
    )
    return await render_page(request, db, user, "Tables/Show", {"table": detail})


@router.put("/{table_id}")
async def update(
    table_id: int,
    data: TableUpdate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    table = await table_service.update_table(db, table_id, **data.model_dump(exclude_unset=True))
    return action_result("Table updated successfully", table=TableResponse.model_validate(table))


@router.delete("/{table_id}")
async def delete(
    table_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await table_service.delete_table(db, table_id)
    return action_result("Table deleted successfully")


@router.patch("/{table_id}/status")
async def update_status(
    table_id: int,
    data: TableStatusUpdate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    table = await table_service.update_table_status(db, table_id, data.status)
    return action_result(
        f"Table {table.table_number} is now {table.status.value}",
        table=TableResponse.model_validate(table),
    )
