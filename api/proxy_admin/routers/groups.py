# api/proxy_admin/routers/groups.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from proxy_admin.database import get_session
from proxy_admin.models import HostGroup as HostGroupModel
from proxy_admin.schemas import HostGroupCreate, HostGroup as HostGroupSchema, UserInDB
from proxy_admin.core.security import get_current_editor_user, get_current_user
from proxy_admin.services.config_pipeline import sync_config_hook

router = APIRouter(prefix="/groups", tags=["Groups"])


async def get_group_or_404(session: AsyncSession, group_id: int) -> HostGroupModel:
    group = await session.get(HostGroupModel, group_id)
    if not group:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Host group not found")
    return group


@router.get("", response_model=List[HostGroupSchema])
async def list_groups(
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_user)
):
    result = await session.execute(select(HostGroupModel).order_by(HostGroupModel.id))
    return result.scalars().all()


@router.post("", response_model=HostGroupSchema, status_code=status.HTTP_201_CREATED)
async def create_group(
        payload: HostGroupCreate,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    group = HostGroupModel(**payload.model_dump())
    session.add(group)
    await session.commit()
    await session.refresh(group)

    await sync_config_hook(session, reason="group.create")
    return group


@router.put("/{group_id}", response_model=HostGroupSchema)
async def update_group(
        group_id: int,
        payload: HostGroupCreate,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    group = await get_group_or_404(session, group_id)
    for key, value in payload.model_dump().items():
        setattr(group, key, value)
    await session.commit()
    await session.refresh(group)

    await sync_config_hook(session, reason="group.update")
    return group


@router.delete("/{group_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_group(
        group_id: int,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    """Delete a group; member hosts keep existing with group_id cleared."""
    group = await get_group_or_404(session, group_id)
    await session.delete(group)
    await session.commit()

    await sync_config_hook(session, reason="group.delete")
