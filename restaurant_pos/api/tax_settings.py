"""
Tax settings endpoints (staff). At most one setting is active at a time.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.api.deps import staff_only
from restaurant_pos.database import get_db
from restaurant_pos.models import TaxSetting, TaxType, User
from restaurant_pos.pages import action_result, render_page
from restaurant_pos.schemas import TaxSettingCreate, TaxSettingResponse, TaxSettingUpdate
from restaurant_pos.services import tax

router = APIRouter(prefix="/tax-settings", tags=["Tax Settings"])


@router.get("", summary="Tax Settings Page")
async def index(
    request: Request,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    result = await db.execute(select(TaxSetting).order_by(TaxSetting.is_active.desc(), TaxSetting.name))
    return await render_page(request, db, user, "TaxSettings/Index", {
        "tax_settings": [TaxSettingResponse.model_validate(s) for s in result.scalars().all()],
        "types": [t.value for t in TaxType],
    })


@router.post("", status_code=status.HTTP_201_CREATED)
async def create(
    data: TaxSettingCreate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    setting = await tax.save_tax_setting(db, TaxSetting(), **data.model_dump())
    return action_result(
        "Tax setting created successfully",
        tax_setting=TaxSettingResponse.model_validate(setting),
    )


@router.put("/{setting_id}")
async def update(
    setting_id: int,
    data: TaxSettingUpdate,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    setting = await tax.get_tax_setting(db, setting_id)
    setting = await tax.save_tax_setting(db, setting, **data.model_dump(exclude_unset=True))
    return action_result(
        "Tax setting updated successfully",
        tax_setting=TaxSettingResponse.model_validate(setting),
    )


@router.delete("/{setting_id}")
async def delete(
    setting_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await tax.delete_tax_setting(db, setting_id)
    return action_result("Tax setting deleted successfully")


@router.post("/{setting_id}/toggle")
async def toggle(
    setting_id: int,
    user: User = Depends(staff_only),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    setting = await tax.toggle_tax_setting(db, setting_id)
    state = "activated" if setting.is_active else "deactivated"
    return action_result(
        f"Tax setting {state}",
        tax_setting=TaxSettingResponse.model_validate(setting),
    )
