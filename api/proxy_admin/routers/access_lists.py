# api/proxy_admin/routers/access_lists.py
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from proxy_admin.database import get_session
from proxy_admin.models import (
    AccessList as AccessListModel,
    AccessListAuth as AccessListAuthModel,
    AccessListClient as AccessListClientModel,
)
from proxy_admin.schemas import AccessListCreate, AccessList as AccessListSchema, UserInDB
from proxy_admin.core.security import get_current_editor_user, get_current_user
from proxy_admin.services.config_pipeline import sync_config_hook

router = APIRouter(prefix="/access-lists", tags=["Access Lists"])


async def get_access_list_or_404(session: AsyncSession, access_list_id: int) -> AccessListModel:
    access_list = await session.get(AccessListModel, access_list_id)
    if not access_list:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Access list not found")
    return access_list


def _apply_payload(access_list: AccessListModel, payload: AccessListCreate) -> None:
    access_list.name = payload.name
    access_list.satisfy = payload.satisfy
    # Rules are replaced wholesale; delete-orphan removes the previous rows.
    access_list.clients = [
        AccessListClientModel(address=client.address, directive=client.directive)
        for client in payload.clients
    ]
    access_list.auth = [
        AccessListAuthModel(username=entry.username, password=entry.password)
        for entry in payload.auth
    ]


@router.get("", response_model=List[AccessListSchema])
async def list_access_lists(
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_user)
):
    result = await session.execute(select(AccessListModel).order_by(AccessListModel.id))
    return result.scalars().all()


@router.post("", response_model=AccessListSchema, status_code=status.HTTP_201_CREATED)
async def create_access_list(
        payload: AccessListCreate,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    access_list = AccessListModel()
    _apply_payload(access_list, payload)
    session.add(access_list)
    await session.commit()
    await session.refresh(access_list)

    await sync_config_hook(session, reason="access_list.create")
    return access_list


@router.put("/{access_list_id}", response_model=AccessListSchema)
async def update_access_list(
        access_list_id: int,
        payload: AccessListCreate,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    access_list = await get_access_list_or_404(session, access_list_id)
    _apply_payload(access_list, payload)
    await session.commit()
    await session.refresh(access_list)

    await sync_config_hook(session, reason="access_list.update")
    return access_list


@router.delete("/{access_list_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_access_list(
        access_list_id: int,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    """Delete an access list.

    Locations that still reference it keep their access_list_id.
    """
    access_list = await get_access_list_or_404(session, access_list_id)
    await session.delete(access_list)
    await session.commit()

    await sync_config_hook(session, reason="access_list.delete")
