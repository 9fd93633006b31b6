"""
Command execution utilities used as the execution context of every tool.

Tool handlers never spawn processes themselves: they receive a
``CommandExecutor`` so tests can substitute a recording double. The process-wide
default executor is resolved through ``get_default_command_executor`` and can be
replaced with ``set_default_command_executor``.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shlex
import subprocess
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Optional, Sequence

LOGGER = logging.getLogger(__name__)

__all__ = [
    "CommandExecutionError",
    "CommandExecutor",
    "CommandResult",
    "get_default_command_executor",
    "set_default_command_executor",
]


class CommandExecutionError(RuntimeError):
    """Raised when a command cannot be started at all."""


@dataclass(slots=True)
class CommandResult:
    """Structured result for a single command invocation."""

    command: tuple[str, ...]
    exit_code: int
    stdout: str
    stderr: str
    cwd: Path
    duration: float
    timestamp: float

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        return self.stdout

    def to_dict(self) -> MutableMapping[str, Any]:
        return {
            "command": list(self.command),
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "cwd": str(self.cwd),
            "duration": self.duration,
            "timestamp": self.timestamp,
        }


@dataclass(slots=True)
class CommandExecutor:
    """
    Small wrapper around `subprocess.run` with predictable output structure.
    """

    workdir: Path = field(default_factory=Path.cwd)
    default_timeout: int = 600
    allowed_binaries: tuple[str, ...] | None = None
    env: Mapping[str, str] | None = None

    def run(
        self,
        command: Sequence[str],
        *,
        log_prefix: str | None = None,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        timeout: Optional[int] = None,
    ) -> CommandResult:
        argv = tuple(str(part) for part in command)
        self._validate_command(argv)
        effective_timeout = timeout or self.default_timeout
        working_dir = Path(cwd) if cwd else self.workdir
        prefix = log_prefix or "command"
        LOGGER.info("%s: executing %s", prefix, shlex.join(argv))
        started = time.perf_counter()
        try:
            completed = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                cwd=working_dir,
                timeout=effective_timeout,
                env=self._build_env(env),
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise CommandExecutionError(f"Unable to execute '{argv[0]}': {exc}") from exc
        duration = time.perf_counter() - started
        LOGGER.debug("%s: exit=%s after %.2fs", prefix, completed.returncode, duration)
        return CommandResult(
            command=argv,
            exit_code=completed.returncode,
            stdout=completed.stdout,
            stderr=completed.stderr,
            cwd=working_dir,
            duration=duration,
            timestamp=time.time(),
        )

    async def run_async(
        self,
        command: Sequence[str],
        *,
        log_prefix: str | None = None,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        timeout: Optional[int] = None,
    ) -> CommandResult:
        """Run ``command`` in a worker thread so the event loop stays responsive."""

        return await asyncio.to_thread(
            self.run,
            command,
            log_prefix=log_prefix,
            cwd=cwd,
            env=env,
            timeout=timeout,
        )

    def _validate_command(self, argv: Sequence[str]) -> None:
        if not argv:
            raise CommandExecutionError("Command must not be empty.")
        if not self.allowed_binaries:
            return
        binary = Path(argv[0]).name
        if binary not in self.allowed_binaries:
            raise PermissionError(f"Command '{binary}' is not permitted by this executor.")

    def _build_env(self, extra: Mapping[str, str] | None) -> Mapping[str, str] | None:
        if not self.env and not extra:
            return None
        merged: MutableMapping[str, str] = dict(os.environ)
        merged.update(self.env or {})
        merged.update(extra or {})
        return merged


_DEFAULT_EXECUTOR: CommandExecutor | None = None


def get_default_command_executor() -> CommandExecutor:
    """Return the process-wide executor, creating it on first use."""

    global _DEFAULT_EXECUTOR
    if _DEFAULT_EXECUTOR is None:
        _DEFAULT_EXECUTOR = CommandExecutor()
    return _DEFAULT_EXECUTOR


def set_default_command_executor(executor: CommandExecutor | None) -> None:
    """Install ``executor`` as the default; ``None`` restores a fresh real executor."""

    global _DEFAULT_EXECUTOR
    _DEFAULT_EXECUTOR = executor
