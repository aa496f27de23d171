from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from proxy_admin.models import AccessList as AccessListModel
from proxy_admin.models import Host as HostModel
from proxy_admin.models import Setting as SettingModel


@dataclass(frozen=True, slots=True)
class ConfigSnapshot:
    hosts: Sequence[Any] = field(default_factory=tuple)
    access_lists: Sequence[Any] = field(default_factory=tuple)
    settings: dict[str, str] = field(default_factory=dict)


async def read_settings_map(session: AsyncSession) -> dict[str, str]:
    result = await session.execute(select(SettingModel).order_by(SettingModel.key.asc()))
    return {row.key: row.value or "" for row in result.scalars().all()}


async def read_snapshot(session: AsyncSession) -> ConfigSnapshot:
    """Read hosts, access lists and settings fresh from the store."""
    hosts_result = await session.execute(
        select(HostModel)
        .order_by(HostModel.id.asc())
        .execution_options(populate_existing=True)
    )
    access_lists_result = await session.execute(
        select(AccessListModel)
        .options(selectinload(AccessListModel.clients), selectinload(AccessListModel.auth))
        .order_by(AccessListModel.id.asc())
        .execution_options(populate_existing=True)
    )

    return ConfigSnapshot(
        hosts=tuple(hosts_result.scalars().all()),
        access_lists=tuple(access_lists_result.scalars().all()),
        settings=await read_settings_map(session),
    )
