from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence


logger = logging.getLogger(__name__)

DEFAULT_SUPERVISOR_COMMAND = "s6-svc -h /run/s6-rc/servicedirs/pingora"
DEFAULT_PID_FILE = "/run/pingora.pid"
DEFAULT_TIMEOUT_SECONDS = 5
MAX_PID = 2**31 - 1


@dataclass(slots=True)
class CommandResult:
    ok: bool
    command: list[str]
    returncode: int
    stdout: str
    stderr: str

    def as_dict(self) -> dict[str, object]:
        return {
            "ok": self.ok,
            "command": self.command,
            "returncode": self.returncode,
            "stdout": self.stdout,
            "stderr": self.stderr,
        }


@dataclass(slots=True)
class SignalAttempt:
    strategy: str
    ok: bool
    detail: dict[str, object]

    def as_dict(self) -> dict[str, object]:
        return {"strategy": self.strategy, "ok": self.ok, **self.detail}


@dataclass(slots=True)
class ReloadResult:
    ok: bool
    strategy: str | None
    attempts: list[SignalAttempt] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.ok

    def as_dict(self) -> dict[str, object]:
        return {
            "ok": self.ok,
            "strategy": self.strategy,
            "attempts": [attempt.as_dict() for attempt in self.attempts],
        }


class ReloadSignaler:
    """Tells the running proxy to re-read its configuration directory.

    The supervisor is asked first; if that fails the reload signal is sent
    straight to the pid recorded in the pid file. Nothing here raises.
    """

    def __init__(
        self,
        supervisor_command: Sequence[str] | None = None,
        pid_file: str | Path | None = None,
        timeout_seconds: int | None = None,
        reload_signal: int = signal.SIGHUP,
    ) -> None:
        self.supervisor_command = list(
            supervisor_command
            or self._read_command_from_env("PROXY_RELOAD_SUPERVISOR_COMMAND", DEFAULT_SUPERVISOR_COMMAND)
        )
        self.pid_file = Path(pid_file or os.getenv("PROXY_PID_FILE", DEFAULT_PID_FILE))
        self.timeout_seconds = timeout_seconds or int(
            os.getenv("PROXY_RELOAD_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS))
        )
        self.reload_signal = reload_signal

    @staticmethod
    def _read_command_from_env(env_key: str, fallback: str) -> list[str]:
        raw_value = os.getenv(env_key, fallback).strip()
        command = shlex.split(raw_value)
        if not command:
            raise ValueError(f"{env_key} cannot be empty.")
        return command

    def _run_command(self, command: Sequence[str]) -> CommandResult:
        command_list = list(command)
        try:
            completed = subprocess.run(
                command_list,
                capture_output=True,
                text=True,
                timeout=self.timeout_seconds,
                check=False,
            )
            returncode = completed.returncode
            stdout = (completed.stdout or "").strip()
            stderr = (completed.stderr or "").strip()
        except FileNotFoundError as exc:
            returncode = 127
            stdout = ""
            stderr = str(exc)
        except subprocess.TimeoutExpired:
            returncode = 124
            stdout = ""
            stderr = f"Command timed out after {self.timeout_seconds}s"
        except OSError as exc:
            returncode = 126
            stdout = ""
            stderr = str(exc)

        return CommandResult(
            ok=returncode == 0,
            command=command_list,
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
        )

    def _signal_via_supervisor(self) -> SignalAttempt:
        result = self._run_command(self.supervisor_command)
        return SignalAttempt(strategy="supervisor", ok=result.ok, detail=result.as_dict())

    def _read_pid(self) -> int:
        raw_pid = self.pid_file.read_text(encoding="utf-8").strip()
        pid = int(raw_pid)
        if pid <= 0 or pid > MAX_PID:
            raise ValueError(f"Invalid pid {raw_pid!r} in {self.pid_file}")
        return pid

    def _signal_via_pid_file(self) -> SignalAttempt:
        detail: dict[str, object] = {"pid_file": str(self.pid_file), "signal": int(self.reload_signal)}
        try:
            pid = self._read_pid()
            detail["pid"] = pid
            os.kill(pid, self.reload_signal)
        except (OSError, OverflowError, ValueError) as exc:
            detail["error"] = str(exc)
            return SignalAttempt(strategy="pid_file", ok=False, detail=detail)
        return SignalAttempt(strategy="pid_file", ok=True, detail=detail)

    def signal_reload(self) -> ReloadResult:
        attempts: list[SignalAttempt] = []
        for strategy in (self._signal_via_supervisor, self._signal_via_pid_file):
            attempt = strategy()
            attempts.append(attempt)
            if attempt.ok:
                return ReloadResult(ok=True, strategy=attempt.strategy, attempts=attempts)
            logger.info("Proxy reload strategy %s failed: %s", attempt.strategy, attempt.detail)

        logger.error(
            "Failed to signal proxy reload; configuration on disk will apply on next restart",
            extra={"attempts": [attempt.as_dict() for attempt in attempts]},
        )
        return ReloadResult(ok=False, strategy=None, attempts=attempts)


def reload_proxy(signaler: ReloadSignaler | None = None) -> bool:
    return (signaler or ReloadSignaler()).signal_reload().ok
