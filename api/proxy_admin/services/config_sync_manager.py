from __future__ import annotations

import logging
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from proxy_admin.services.config_compiler import (
    compile_access_lists,
    compile_global,
    compile_host,
    render_document,
)
from proxy_admin.services.snapshot_reader import ConfigSnapshot


logger = logging.getLogger(__name__)

DEFAULT_CONFIGS_DIR = "/data/configs"
ARTIFACT_SUFFIX = ".yaml"
GLOBAL_ARTIFACT_NAME = f"global{ARTIFACT_SUFFIX}"
ACCESS_LISTS_ARTIFACT_NAME = f"access-lists{ARTIFACT_SUFFIX}"
FIXED_ARTIFACT_NAMES = (GLOBAL_ARTIFACT_NAME, ACCESS_LISTS_ARTIFACT_NAME)


@dataclass(frozen=True, slots=True)
class ArtifactFamily:
    prefix: str
    legacy: bool
    description: str


# Every per-entity artifact family this service has ever written. Legacy
# families are never written again but must still be purged on resync and
# on host removal. Extend this table when the naming scheme changes.
GENERATED_ARTIFACT_FAMILIES: tuple[ArtifactFamily, ...] = (
    ArtifactFamily("host-", legacy=False, description="one document per host"),
    ArtifactFamily("redirect-", legacy=True, description="per-redirection documents, now host locations"),
    ArtifactFamily("stream-", legacy=True, description="per-stream documents, now host stream_ports"),
)


def host_artifact_name(host_id: int) -> str:
    return f"host-{host_id}{ARTIFACT_SUFFIX}"


def is_generated_artifact(name: str) -> bool:
    # Leftover temp files from an interrupted atomic write carry a leading dot.
    if any(name.startswith(f".{fixed}.") for fixed in FIXED_ARTIFACT_NAMES):
        return True
    candidate = name[1:] if name.startswith(".") else name
    return any(candidate.startswith(family.prefix) for family in GENERATED_ARTIFACT_FAMILIES)


@dataclass(slots=True)
class SyncResult:
    configs_dir: Path
    written: list[Path] = field(default_factory=list)
    removed: list[Path] = field(default_factory=list)

    def as_dict(self) -> dict[str, object]:
        return {
            "configs_dir": str(self.configs_dir),
            "written": [str(path) for path in self.written],
            "removed": [str(path) for path in self.removed],
        }


class ConfigSyncError(RuntimeError):
    def __init__(self, detail: str, diagnostics: dict[str, object]):
        super().__init__(detail)
        self.detail = detail
        self.diagnostics = diagnostics


class ConfigSynchronizer(Protocol):
    configs_dir: Path

    def sync_all(self, snapshot: ConfigSnapshot) -> SyncResult:
        ...

    def remove_host(self, host_id: int) -> list[Path]:
        ...


class FullResyncSynchronizer:
    """Rebuilds the whole configuration directory from a snapshot on every pass."""

    def __init__(self, configs_dir: str | Path | None = None) -> None:
        self.configs_dir = Path(configs_dir or os.getenv("CONFIGS_DIR", DEFAULT_CONFIGS_DIR))
        self._lock = threading.Lock()

    @staticmethod
    def _write_file_atomic(path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="wb",
            dir=str(path.parent),
            prefix=f".{path.name}.",
            delete=False,
        ) as tmp_file:
            tmp_file.write(content)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
            temp_path = Path(tmp_file.name)
        try:
            os.replace(temp_path, path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

    def _compile_documents(self, snapshot: ConfigSnapshot) -> list[tuple[str, bytes]]:
        documents = [
            (GLOBAL_ARTIFACT_NAME, render_document(compile_global(snapshot.settings))),
            (ACCESS_LISTS_ARTIFACT_NAME, render_document(compile_access_lists(snapshot.access_lists))),
        ]
        for host in snapshot.hosts:
            documents.append((host_artifact_name(host.id), render_document(compile_host(host))))
        return [(name, content.encode("utf-8")) for name, content in documents]

    def _cleanup_generated_artifacts(self) -> list[Path]:
        removed: list[Path] = []
        try:
            entries = sorted(self.configs_dir.iterdir())
        except OSError as exc:
            logger.warning("Could not list configs dir %s for cleanup: %s", self.configs_dir, exc)
            return removed

        for entry in entries:
            if not is_generated_artifact(entry.name):
                continue
            try:
                entry.unlink()
                removed.append(entry)
            except FileNotFoundError:
                continue
            except OSError as exc:
                logger.warning("Could not remove stale config artifact %s: %s", entry, exc)
        return removed

    def sync_all(self, snapshot: ConfigSnapshot) -> SyncResult:
        with self._lock:
            # Compile everything up front: a compiler defect must not leave the
            # directory half cleaned.
            try:
                documents = self._compile_documents(snapshot)
            except Exception as exc:
                raise ConfigSyncError(
                    "Failed to compile configuration documents; directory left untouched.",
                    {"stage": "compile", "exception": str(exc)},
                ) from exc

            try:
                self.configs_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                raise ConfigSyncError(
                    "Failed to create configs directory.",
                    {"stage": "prepare", "configs_dir": str(self.configs_dir), "exception": str(exc)},
                ) from exc

            result = SyncResult(configs_dir=self.configs_dir)
            result.removed = self._cleanup_generated_artifacts()

            for name, content in documents:
                target_path = self.configs_dir / name
                try:
                    self._write_file_atomic(target_path, content)
                except OSError as exc:
                    raise ConfigSyncError(
                        "Failed to write configuration artifact.",
                        {
                            "stage": "write",
                            "path": str(target_path),
                            "exception": str(exc),
                            "written": [str(path) for path in result.written],
                        },
                    ) from exc
                result.written.append(target_path)

            logger.debug(
                "Config directory resynced",
                extra={
                    "configs_dir": str(self.configs_dir),
                    "written_count": len(result.written),
                    "removed_count": len(result.removed),
                },
            )
            return result

    def remove_host(self, host_id: int) -> list[Path]:
        removed: list[Path] = []
        with self._lock:
            for family in GENERATED_ARTIFACT_FAMILIES:
                candidate = self.configs_dir / f"{family.prefix}{host_id}{ARTIFACT_SUFFIX}"
                try:
                    candidate.unlink()
                    removed.append(candidate)
                except FileNotFoundError:
                    continue
                except OSError as exc:
                    raise ConfigSyncError(
                        "Failed to remove host configuration artifact.",
                        {
                            "stage": "remove",
                            "path": str(candidate),
                            "exception": str(exc),
                            "removed": [str(path) for path in removed],
                        },
                    ) from exc
        return removed
