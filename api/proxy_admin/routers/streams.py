# api/proxy_admin/routers/streams.py
"""Streams are domain-less hosts carrying raw TCP/UDP forwards only."""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from proxy_admin.database import get_session
from proxy_admin.models import Host as HostModel
from proxy_admin.schemas import StreamCreate, Host as HostSchema, UserInDB
from proxy_admin.core.security import get_current_editor_user, get_current_user
from proxy_admin.routers.hosts import create_host_record, delete_host_record, update_host_record
from proxy_admin.services.location_normalizer import normalize_locations, normalize_stream_ports

router = APIRouter(prefix="/streams", tags=["Streams"])


def is_stream_host(host) -> bool:
    return not normalize_locations(host.locations) and bool(normalize_stream_ports(host.stream_ports))


@router.get("", response_model=List[HostSchema])
async def list_streams(
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_user)
):
    result = await session.execute(select(HostModel).order_by(HostModel.id))
    return [host for host in result.scalars().all() if is_stream_host(host)]


@router.post("", response_model=HostSchema, status_code=status.HTTP_201_CREATED)
async def create_stream(
        payload: StreamCreate,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    return await create_host_record(session, payload.to_host(), reason="stream.create")


@router.put("/{host_id}", response_model=HostSchema)
async def update_stream(
        host_id: int,
        payload: StreamCreate,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    return await update_host_record(session, host_id, payload.to_host(), reason="stream.update")


@router.delete("/{host_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_stream(
        host_id: int,
        session: AsyncSession = Depends(get_session),
        current_user: UserInDB = Depends(get_current_editor_user)
):
    await delete_host_record(session, host_id, reason="stream.delete")
