# souq/services/settings_service.py
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from souq.core.config import DEFAULT_COMMISSION_RATE, DEFAULT_RANKING_WEIGHTS
from souq.models.settings_models import AdminSettings, SETTINGS_ID
from souq.schemas.settings_schemas import SettingsUpdate
from souq.utils.activity_helpers import log_user_activity
from souq.utils.decimal_utils import to_decimal


async def get_settings(db: AsyncSession) -> AdminSettings | None:
    result = await db.execute(
        select(AdminSettings)
        .where(AdminSettings.id == SETTINGS_ID)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_or_create_settings(db: AsyncSession) -> AdminSettings:
    settings = await get_settings(db)
    if settings is None:
        settings = AdminSettings(
            id=SETTINGS_ID,
            free_mode=False,
            global_commission_rate=DEFAULT_COMMISSION_RATE,
            ranking_weights=dict(DEFAULT_RANKING_WEIGHTS),
        )
        db.add(settings)
        await db.commit()
        await db.refresh(settings)
    return settings


def commission_rate_for(settings: AdminSettings | None) -> Decimal:
    """Free mode zeroes commission; otherwise the global rate (or the default)."""
    if settings is None:
        return DEFAULT_COMMISSION_RATE
    if settings.free_mode:
        return Decimal("0")
    if settings.global_commission_rate is None:
        return DEFAULT_COMMISSION_RATE
    return to_decimal(settings.global_commission_rate)


async def get_commission_rate(db: AsyncSession) -> Decimal:
    return commission_rate_for(await get_settings(db))


def ranking_weights_for(settings: AdminSettings | None) -> dict:
    weights = dict(DEFAULT_RANKING_WEIGHTS)
    if settings is not None and settings.ranking_weights:
        weights.update({k: float(v) for k, v in settings.ranking_weights.items() if k in weights})
    return weights


async def get_ranking_weights(db: AsyncSession) -> dict:
    return ranking_weights_for(await get_settings(db))


async def update_settings(db: AsyncSession, payload: SettingsUpdate, _user) -> AdminSettings:
    settings = await get_or_create_settings(db)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True, exclude={"ranking_weights"})

    if "free_mode" in changes:
        settings.free_mode = changes["free_mode"]
    if "global_commission_rate" in changes:
        settings.global_commission_rate = changes["global_commission_rate"]
    if payload.ranking_weights is not None:
        weights = payload.ranking_weights.model_dump(by_alias=True, exclude_none=True)
        merged = dict(settings.ranking_weights or DEFAULT_RANKING_WEIGHTS)
        merged.update(weights)
        # reassign so the JSON column is flagged dirty
        settings.ranking_weights = merged
        changes["ranking_weights"] = weights

    await log_user_activity(
        db,
        user_id=_user.id,
        action="UPDATE_SETTINGS",
        entity_type="AdminSettings",
        entity_id=SETTINGS_ID,
        message=f"Admin {_user.email} updated marketplace settings",
        metadata={k: str(v) if isinstance(v, Decimal) else v for k, v in changes.items()},
    )

    await db.commit()
    await db.refresh(settings)
    return settings
