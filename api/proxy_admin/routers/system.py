# api/proxy_admin/routers/system.py

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from proxy_admin.database import get_session
from proxy_admin.schemas import UserInDB
from proxy_admin.core.security import get_current_editor_user
from proxy_admin.services.config_pipeline import config_pipeline, sync_config_hook

router = APIRouter(prefix="/system", tags=["System"])


@router.get("/health")
async def health_check():
    """Return liveness plus the outcome of the most recent config pipeline run."""
    last_result = config_pipeline.last_result
    overall = "healthy"
    if last_result is not None and not last_result.reloaded:
        overall = "degraded"

    return {
        "status": overall,
        "timestamp": datetime.now(timezone.utc),
        "configs_dir": str(config_pipeline.synchronizer.configs_dir),
        "last_pipeline_run": last_result.as_dict() if last_result else None,
    }


@router.post("/resync", response_model=dict)
async def resync_configs(
    session: AsyncSession = Depends(get_session),
    current_user: UserInDB = Depends(get_current_editor_user),
):
    """Rebuild the config directory from the store and signal the proxy."""
    result = await sync_config_hook(session, reason="system.resync")
    return result.as_dict()
