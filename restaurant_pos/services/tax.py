"""
Tax settings: the single active rule and the rate it implies.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_pos.core.config import get_settings
from restaurant_pos.core.exceptions import NotFoundError, BusinessRuleError
from restaurant_pos.models import TaxSetting, TaxType

logger = logging.getLogger(__name__)


async def get_active_tax(db: AsyncSession) -> Optional[TaxSetting]:
    result = await db.execute(
        select(TaxSetting).where(TaxSetting.is_active.is_(True)).order_by(TaxSetting.id.desc()).limit(1)
    )
    return result.scalar_one_or_none()


async def current_tax_rate(db: AsyncSession) -> Decimal:
    """
    Rate applied when recalculating order totals: 0 for a free rule,
    ``tax_rate / 100`` for a manual rule, the configured default otherwise.
    """
    active = await get_active_tax(db)
    if active is None:
        return Decimal(get_settings().default_tax_rate)
    return active.rate_fraction


async def get_tax_setting(db: AsyncSession, setting_id: int) -> TaxSetting:
    setting = await db.get(TaxSetting, setting_id)
    if setting is None:
        raise NotFoundError("Tax setting", setting_id)
    return setting


async def _deactivate_others(db: AsyncSession, keep_id: int) -> None:
    await db.execute(
        update(TaxSetting)
        .where(TaxSetting.id != keep_id, TaxSetting.is_active.is_(True))
        .values(is_active=False)
        .execution_options(synchronize_session="fetch")
    )


def _normalize(setting: TaxSetting) -> None:
    if setting.type == TaxType.FREE:
        setting.tax_rate = None
    elif setting.tax_rate is None:
        raise BusinessRuleError("A manual tax setting needs a tax rate")


async def save_tax_setting(db: AsyncSession, setting: TaxSetting, **changes) -> TaxSetting:
    """Apply ``changes``, enforce the rate rules and keep at most one active setting."""
    for key, value in changes.items():
        setattr(setting, key, value)
    _normalize(setting)

    if setting.id is None:
        db.add(setting)
    await db.flush()

    if setting.is_active:
        await _deactivate_others(db, setting.id)
        logger.info(f"Tax setting '{setting.name}' activated ({setting.formatted_tax_rate})")

    await db.commit()
    await db.refresh(setting)
    return setting


async def toggle_tax_setting(db: AsyncSession, setting_id: int) -> TaxSetting:
    setting = await get_tax_setting(db, setting_id)
    return await save_tax_setting(db, setting, is_active=not setting.is_active)


async def delete_tax_setting(db: AsyncSession, setting_id: int) -> None:
    setting = await get_tax_setting(db, setting_id)
    await db.delete(setting)
    await db.commit()
