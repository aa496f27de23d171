from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from fastapi import HTTPException, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.ext.asyncio import AsyncSession

from proxy_admin.services.config_sync_manager import (
    ConfigSyncError,
    ConfigSynchronizer,
    FullResyncSynchronizer,
    SyncResult,
)
from proxy_admin.services.reload_signaler import ReloadResult, ReloadSignaler
from proxy_admin.services.snapshot_reader import ConfigSnapshot, read_snapshot


logger = logging.getLogger(__name__)

SnapshotReader = Callable[[AsyncSession], Awaitable[ConfigSnapshot]]


@dataclass(slots=True)
class PipelineResult:
    reason: str
    sync: SyncResult | None
    reload: ReloadResult

    @property
    def reloaded(self) -> bool:
        return self.reload.ok

    def as_dict(self) -> dict[str, object]:
        return {
            "reason": self.reason,
            "sync": self.sync.as_dict() if self.sync else None,
            "reload": self.reload.as_dict(),
        }


class ConfigPipeline:
    """Store snapshot -> config directory -> proxy reload, one pass per mutation.

    Passes are serialised with an in-process lock; there is no batching, so
    N mutations cause N full resyncs and N reload attempts.
    """

    def __init__(
        self,
        synchronizer: ConfigSynchronizer | None = None,
        signaler: ReloadSignaler | None = None,
        snapshot_reader: SnapshotReader = read_snapshot,
    ) -> None:
        self.synchronizer = synchronizer or FullResyncSynchronizer()
        self.signaler = signaler or ReloadSignaler()
        self.snapshot_reader = snapshot_reader
        self.last_result: PipelineResult | None = None
        self._lock = asyncio.Lock()

    async def _signal(self, reason: str) -> ReloadResult:
        reload_result = await run_in_threadpool(self.signaler.signal_reload)
        if not reload_result.ok:
            logger.warning(
                "Proxy reload signal failed after config change",
                extra={"reason": reason, "reload": reload_result.as_dict()},
            )
        return reload_result

    async def apply(self, session: AsyncSession, *, reason: str) -> PipelineResult:
        async with self._lock:
            snapshot = await self.snapshot_reader(session)
            sync_result = await run_in_threadpool(self.synchronizer.sync_all, snapshot)
            reload_result = await self._signal(reason)

            result = PipelineResult(reason=reason, sync=sync_result, reload=reload_result)
            self.last_result = result
            logger.info(
                "Applied proxy configuration",
                extra={
                    "reason": reason,
                    "host_count": len(snapshot.hosts),
                    "access_list_count": len(snapshot.access_lists),
                    "reloaded": reload_result.ok,
                },
            )
            return result

    async def remove_host_and_reload(self, host_id: int, *, reason: str) -> PipelineResult:
        async with self._lock:
            removed = await run_in_threadpool(self.synchronizer.remove_host, host_id)
            reload_result = await self._signal(reason)

            sync_result = SyncResult(configs_dir=self.synchronizer.configs_dir, removed=removed)
            result = PipelineResult(reason=reason, sync=sync_result, reload=reload_result)
            self.last_result = result
            return result


config_pipeline = ConfigPipeline()


async def sync_config_hook(
    session: AsyncSession,
    *,
    reason: str,
    pipeline: ConfigPipeline | None = None,
) -> PipelineResult:
    """
    Resync the generated config directory and signal the proxy after a committed mutation.
    """
    try:
        return await (pipeline or config_pipeline).apply(session, reason=reason)
    except ConfigSyncError as exc:
        logger.error(
            "Failed to sync proxy configuration",
            extra={"reason": reason, "diagnostics": exc.diagnostics},
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{exc.detail} (stage: {exc.diagnostics.get('stage', 'unknown')})",
        ) from exc

