import asyncio
from pathlib import Path
from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from proxy_admin.services.config_pipeline import ConfigPipeline, sync_config_hook
from proxy_admin.services.config_sync_manager import ConfigSyncError, SyncResult
from proxy_admin.services.reload_signaler import ReloadResult, SignalAttempt
from proxy_admin.services.snapshot_reader import ConfigSnapshot


class _RecordingSynchronizer:
    def __init__(self, events, error=None):
        self.configs_dir = Path("/tmp/proxy-configs")
        self.events = events
        self.error = error
        self.snapshots = []

    def sync_all(self, snapshot):
        self.events.append("sync")
        if self.error is not None:
            raise self.error
        self.snapshots.append(snapshot)
        return SyncResult(configs_dir=self.configs_dir, written=[self.configs_dir / "global.yaml"])

    def remove_host(self, host_id):
        self.events.append(f"remove:{host_id}")
        if self.error is not None:
            raise self.error
        return [self.configs_dir / f"host-{host_id}.yaml"]


class _RecordingSignaler:
    def __init__(self, events, ok=True):
        self.events = events
        self.ok = ok

    def signal_reload(self):
        self.events.append("reload")
        attempt = SignalAttempt(strategy="supervisor", ok=self.ok, detail={})
        return ReloadResult(ok=self.ok, strategy="supervisor" if self.ok else None, attempts=[attempt])


def _pipeline(events, *, sync_error=None, reload_ok=True, snapshot=None):
    snapshot = snapshot or ConfigSnapshot(hosts=(SimpleNamespace(id=1),), access_lists=(), settings={})

    async def fake_reader(session):
        events.append("read")
        return snapshot

    return ConfigPipeline(
        synchronizer=_RecordingSynchronizer(events, error=sync_error),
        signaler=_RecordingSignaler(events, ok=reload_ok),
        snapshot_reader=fake_reader,
    )


def test_apply_reads_then_syncs_then_reloads():
    events = []
    pipeline = _pipeline(events)

    result = asyncio.run(pipeline.apply(object(), reason="host.create"))

    assert events == ["read", "sync", "reload"]
    assert result.reason == "host.create"
    assert result.reloaded is True
    assert pipeline.last_result is result


def test_apply_passes_fresh_snapshot_to_synchronizer():
    events = []
    snapshot = ConfigSnapshot(hosts=(SimpleNamespace(id=9),), access_lists=(), settings={"global_webhook_url": ""})
    pipeline = _pipeline(events, snapshot=snapshot)

    asyncio.run(pipeline.apply(object(), reason="settings.update"))

    assert pipeline.synchronizer.snapshots == [snapshot]


def test_reload_failure_is_reported_not_raised():
    events = []
    pipeline = _pipeline(events, reload_ok=False)

    result = asyncio.run(pipeline.apply(object(), reason="group.update"))

    assert result.reloaded is False
    assert result.as_dict()["reload"]["ok"] is False
    assert pipeline.last_result is result


def test_sync_failure_skips_reload():
    events = []
    error = ConfigSyncError("Failed to write configuration artifact.", {"stage": "write"})
    pipeline = _pipeline(events, sync_error=error)

    with pytest.raises(ConfigSyncError):
        asyncio.run(pipeline.apply(object(), reason="host.update"))

    assert events == ["read", "sync"]
    assert pipeline.last_result is None


def test_sync_hook_maps_sync_failure_to_http_500():
    events = []
    error = ConfigSyncError("Failed to write configuration artifact.", {"stage": "write"})
    pipeline = _pipeline(events, sync_error=error)

    with pytest.raises(HTTPException) as exc_info:
        asyncio.run(sync_config_hook(object(), reason="host.update", pipeline=pipeline))

    assert exc_info.value.status_code == 500
    assert exc_info.value.detail == "Failed to write configuration artifact. (stage: write)"


def test_sync_hook_returns_result_on_success():
    events = []
    pipeline = _pipeline(events)

    result = asyncio.run(sync_config_hook(object(), reason="access_list.create", pipeline=pipeline))

    assert result.reloaded is True
    assert result.sync.as_dict()["written"] == ["/tmp/proxy-configs/global.yaml"]


def test_remove_host_and_reload():
    events = []
    pipeline = _pipeline(events)

    result = asyncio.run(pipeline.remove_host_and_reload(7, reason="host.delete"))

    assert events == ["remove:7", "reload"]
    assert result.sync.removed == [Path("/tmp/proxy-configs/host-7.yaml")]
    assert result.reloaded is True


def test_remove_host_failure_skips_reload():
    events = []
    error = ConfigSyncError("Failed to remove host configuration artifact.", {"stage": "remove"})
    pipeline = _pipeline(events, sync_error=error)

    with pytest.raises(ConfigSyncError):
        asyncio.run(pipeline.remove_host_and_reload(7, reason="host.delete"))

    assert events == ["remove:7"]


def test_concurrent_applies_do_not_interleave():
    events = []
    pipeline = _pipeline(events)

    async def run_both():
        await asyncio.gather(
            pipeline.apply(object(), reason="first"),
            pipeline.apply(object(), reason="second"),
        )

    asyncio.run(run_both())

    assert events == ["read", "sync", "reload", "read", "sync", "reload"]
