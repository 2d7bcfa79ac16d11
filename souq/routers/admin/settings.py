from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from souq.core.db import get_db
from souq.models.settings_models import AdminSettings
from souq.schemas.response_schemas import ResponseMessage
from souq.schemas.settings_schemas import SettingsUpdate, SettingsOut
from souq.services.settings_service import get_or_create_settings, update_settings, ranking_weights_for
from souq.utils.get_user import get_current_user
from souq.utils.check_roles import require_role

router = APIRouter(prefix="/settings", tags=["Admin Settings"])


def _settings_out(settings: AdminSettings) -> SettingsOut:
    return SettingsOut(
        free_mode=settings.free_mode,
        global_commission_rate=settings.global_commission_rate,
        ranking_weights=ranking_weights_for(settings),
    )


@router.get("", response_model=ResponseMessage[SettingsOut])
@require_role(["admin"])
async def get_settings_route(db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return ResponseMessage(data=_settings_out(await get_or_create_settings(db)))


@router.patch("", response_model=ResponseMessage[SettingsOut])
@require_role(["admin"])
async def update_settings_route(data: SettingsUpdate, db: AsyncSession = Depends(get_db), _user=Depends(get_current_user)):
    return ResponseMessage(data=_settings_out(await update_settings(db, data, _user)))
