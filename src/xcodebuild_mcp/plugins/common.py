"""Helpers shared by the bundled tool handlers."""

from __future__ import annotations

import logging
import os
from typing import Any, Mapping, Sequence, TypeVar

from pydantic import BaseModel, ValidationError

from ..tooling.executors import CommandExecutionError, CommandExecutor, CommandResult
from ..tooling.responses import ToolResponse, create_error_response

LOGGER = logging.getLogger(__name__)

AXE_PATH_ENV = "XCODEBUILDMCP_AXE_PATH"

ModelT = TypeVar("ModelT", bound=BaseModel)


class InvalidParamsError(ValueError):
    """Raised when tool parameters fail validation."""

    def __init__(self, tool_name: str, error: ValidationError) -> None:
        self.tool_name = tool_name
        self.error = error
        super().__init__(f"Invalid parameters for '{tool_name}'")

    def to_response(self) -> ToolResponse:
        return create_error_response("Parameter validation failed", str(self.error))


def parse_params(model: type[ModelT], params: Mapping[str, Any], tool_name: str) -> ModelT:
    try:
        return model.model_validate(dict(params))
    except ValidationError as exc:
        raise InvalidParamsError(tool_name, exc) from exc


def format_next_steps(steps: Sequence[str]) -> str:
    lines = [f"{index}. {step}" for index, step in enumerate(steps, start=1)]
    return "Next Steps:\n" + "\n".join(lines)


def failure_details(result: CommandResult) -> str:
    return (result.stderr or result.stdout).strip() or f"exit code {result.exit_code}"


async def run_tool_command(
    executor: CommandExecutor,
    command: Sequence[str],
    *,
    log_prefix: str,
    env: Mapping[str, str] | None = None,
) -> CommandResult:
    LOGGER.debug("%s: %s", log_prefix, " ".join(command))
    return await executor.run_async(command, log_prefix=log_prefix, env=env)


def resolve_axe_binary() -> str:
    return os.environ.get(AXE_PATH_ENV) or "axe"


async def run_axe(
    executor: CommandExecutor,
    arguments: Sequence[str],
    simulator_uuid: str,
    action: str,
) -> ToolResponse | None:
    """Run ``axe`` against a simulator. Returns an error response, or ``None`` on success."""

    command = [resolve_axe_binary(), *arguments, "--udid", simulator_uuid]
    try:
        result = await run_tool_command(executor, command, log_prefix=f"[AXe]: {action}")
    except CommandExecutionError as exc:
        return create_error_response(
            "AXe binary not found",
            f"Install AXe or point {AXE_PATH_ENV} at the binary. ({exc})",
        )
    if not result.success:
        return create_error_response(f"Failed to simulate {action}: axe command '{action}' failed.", failure_details(result))
    return None
