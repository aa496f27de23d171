# api/proxy_admin/routers/hosts.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
import logging

from proxy_admin.database import get_session
from proxy_admin.models import Host as HostModel, HostGroup as HostGroupModel
from proxy_admin.schemas import HostCreate, Host as HostSchema, UserInDB
from proxy_admin.core.security import get_current_editor_user, get_current_user
from proxy_admin.services.config_pipeline import sync_config_hook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hosts", tags=["Hosts"])


async def get_host_or_404(session: AsyncSession, host_id: int) -> HostModel:
    host = await session.get(HostModel, host_id)
    if not host:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Host not found")
    return host


async def ensure_group_exists(session: AsyncSession, group_id: int | None) -> None:
    if group_id is None:
        return
    if not await session.get(HostGroupModel, group_id):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Host group {group_id} does not exist",
        )


async def create_host_record(session: AsyncSession, payload: HostCreate, *, reason: str) -> HostModel:
    await ensure_group_exists(session, payload.group_id)
    host = HostModel(**payload.to_model_fields())
    session.add(host)
    await session.commit()
    await session.refresh(host)
    logger.info("Created host", extra={"host_id": host.id, "domains": host.domains})

    await sync_config_hook(session, reason=reason)
    return host


async def update_host_record(
    session: AsyncSession,
    host_id: int,
    payload: HostCreate,
    *,
    reason: str,
) -> HostModel:
    host = await get_host_or_404(session, host_id)
    await ensure_group_exists(session, payload.group_id)
    for key, value in payload.to_model_fields().items():
        setattr(host, key, value)
    await session.commit()
    await session.refresh(host)
    logger.info("Updated host", extra={"host_id": host.id, "domains": host.domains})

    await sync_config_hook(session, reason=reason)
    return host


async def delete_host_record(session: AsyncSession, host_id: int, *, reason: str) -> None:
    host = await get_host_or_404(session, host_id)
    await session.delete(host)
    await session.commit()
    logger.info("Deleted host", extra={"host_id": host_id})

    await sync_config_hook(session, reason=reason)


@router.get("", response_model=List[HostSchema])
async def list_hosts(
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_user)
):
    """List all hosts."""
    result = await session.execute(select(HostModel).order_by(HostModel.id))
    return result.scalars().all()


@router.get("/{host_id}", response_model=HostSchema)
async def get_host(
        host_id: int,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_user)
):
    return await get_host_or_404(session, host_id)


@router.post("", response_model=HostSchema, status_code=status.HTTP_201_CREATED)
async def create_host(
        payload: HostCreate,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    """Add a host and publish the regenerated proxy configuration."""
    return await create_host_record(session, payload, reason="host.create")


@router.put("/{host_id}", response_model=HostSchema)
async def update_host(
        host_id: int,
        payload: HostCreate,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    return await update_host_record(session, host_id, payload, reason="host.update")


@router.post("/{host_id}/toggle", response_model=HostSchema)
async def toggle_host(
        host_id: int,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    """Flip the enabled flag of a host."""
    host = await get_host_or_404(session, host_id)
    host.enabled = not host.enabled
    await session.commit()
    await session.refresh(host)

    await sync_config_hook(session, reason="host.toggle")
    return host


@router.delete("/{host_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_host(
        host_id: int,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    await delete_host_record(session, host_id, reason="host.delete")
