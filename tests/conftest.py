from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping, Sequence

import pytest

from xcodebuild_mcp.server import set_active_server
from xcodebuild_mcp.tooling.config import ENV_PREFIX, load_runtime_config
from xcodebuild_mcp.tooling.executors import (
    CommandExecutionError,
    CommandExecutor,
    CommandResult,
    set_default_command_executor,
)


class RecordingExecutor(CommandExecutor):
    """Executor double: records every command and replays queued results."""

    def __init__(self) -> None:
        super().__init__(workdir=Path("/tmp"))
        self.calls: list[dict[str, object]] = []
        self._queued: list[CommandResult | Exception] = []

    def queue(self, stdout: str = "", stderr: str = "", exit_code: int = 0) -> "RecordingExecutor":
        self._queued.append(
            CommandResult(
                command=(),
                exit_code=exit_code,
                stdout=stdout,
                stderr=stderr,
                cwd=self.workdir,
                duration=0.0,
                timestamp=0.0,
            )
        )
        return self

    def fail_to_start(self, message: str = "not found") -> "RecordingExecutor":
        self._queued.append(CommandExecutionError(message))
        return self

    def run(  # type: ignore[override]
        self,
        command: Sequence[str],
        *,
        log_prefix: str | None = None,
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        argv = tuple(str(part) for part in command)
        self.calls.append({"command": list(argv), "log_prefix": log_prefix, "env": env})
        outcome = self._queued.pop(0) if self._queued else None
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            return CommandResult(argv, 0, "", "", self.workdir, 0.0, 0.0)
        outcome.command = argv
        return outcome

    @property
    def commands(self) -> list[list[str]]:
        return [call["command"] for call in self.calls]  # type: ignore[misc]


@pytest.fixture(autouse=True)
def _isolated_runtime(monkeypatch: pytest.MonkeyPatch):
    for key in list(os.environ):
        if key.startswith(ENV_PREFIX):
            monkeypatch.delenv(key, raising=False)
    load_runtime_config.cache_clear()
    yield
    load_runtime_config.cache_clear()
    set_default_command_executor(None)
    set_active_server(None)


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()
