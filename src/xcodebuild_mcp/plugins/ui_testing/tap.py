"""Tap at a screen coordinate of a simulator."""

from __future__ import annotations

from typing import Any, Mapping

from ...core.plugin_types import ToolDefinition
from ...tooling.executors import CommandExecutor
from ...tooling.responses import ToolResponse, create_text_response
from ...tooling.tool_schemas import TapInput
from ..common import InvalidParamsError, parse_params, run_axe


def tap_arguments(parsed: TapInput) -> list[str]:
    arguments = ["tap", "-x", str(parsed.x), "-y", str(parsed.y)]
    if parsed.pre_delay is not None:
        arguments.extend(["--pre-delay", str(parsed.pre_delay)])
    if parsed.post_delay is not None:
        arguments.extend(["--post-delay", str(parsed.post_delay)])
    return arguments


async def tap_logic(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
    try:
        parsed = parse_params(TapInput, params, "tap")
    except InvalidParamsError as exc:
        return exc.to_response()

    failure = await run_axe(executor, tap_arguments(parsed), parsed.simulator_uuid, "tap")
    if failure is not None:
        return failure
    return create_text_response(f"Tap at ({parsed.x}, {parsed.y}) simulated successfully.")


tool = ToolDefinition(
    name="tap",
    description="Tap at specific coordinates on the simulator screen.",
    schema=TapInput,
    handler=tap_logic,
    annotations={"destructiveHint": True},
)
