# api/proxy_admin/routers/settings.py
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from proxy_admin.database import get_session
from proxy_admin.models import Setting as SettingModel
from proxy_admin.schemas import SETTING_KEYS, SettingsUpdate, UserInDB
from proxy_admin.core.security import get_current_admin_user
from proxy_admin.services.config_pipeline import sync_config_hook
from proxy_admin.services.snapshot_reader import read_settings_map

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("", response_model=dict)
async def get_settings(
    session: AsyncSession = Depends(get_session),
    current_user: UserInDB = Depends(get_current_admin_user),
):
    stored = await read_settings_map(session)
    return {key: stored.get(key, "") for key in SETTING_KEYS}


@router.put("", response_model=dict)
async def update_settings(
    payload: SettingsUpdate,
    session: AsyncSession = Depends(get_session),
    current_user: UserInDB = Depends(get_current_admin_user),
):
    data = payload.model_dump()
    changed: dict[str, str] = {}
    for key in SETTING_KEYS:
        value = data[key]
        setting = await session.get(SettingModel, key)
        if setting is None:
            session.add(SettingModel(key=key, value=value))
            changed[key] = value
        elif setting.value != value:
            setting.value = value
            changed[key] = value
    await session.commit()

    result = await sync_config_hook(session, reason="settings.update")
    return {"saved": True, "changed": changed, "reloaded": result.reloaded}
