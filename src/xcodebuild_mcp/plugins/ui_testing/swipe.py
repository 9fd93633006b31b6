"""Swipe between two points on a simulator screen."""

from __future__ import annotations

from typing import Any, Mapping

from ...core.plugin_types import ToolDefinition
from ...tooling.executors import CommandExecutor
from ...tooling.responses import ToolResponse, create_text_response
from ...tooling.tool_schemas import SwipeInput
from ..common import InvalidParamsError, parse_params, run_axe


def swipe_arguments(parsed: SwipeInput) -> list[str]:
    arguments = [
        "swipe",
        "--start-x",
        str(parsed.x1),
        "--start-y",
        str(parsed.y1),
        "--end-x",
        str(parsed.x2),
        "--end-y",
        str(parsed.y2),
    ]
    optional = (
        ("--duration", parsed.duration),
        ("--delta", parsed.delta),
        ("--pre-delay", parsed.pre_delay),
        ("--post-delay", parsed.post_delay),
    )
    for flag, value in optional:
        if value is not None:
            arguments.extend([flag, str(value)])
    return arguments


async def swipe_logic(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
    try:
        parsed = parse_params(SwipeInput, params, "swipe")
    except InvalidParamsError as exc:
        return exc.to_response()

    failure = await run_axe(executor, swipe_arguments(parsed), parsed.simulator_uuid, "swipe")
    if failure is not None:
        return failure
    message = f"Swipe from ({parsed.x1}, {parsed.y1}) to ({parsed.x2}, {parsed.y2})"
    if parsed.duration is not None:
        message += f" duration={parsed.duration}s"
    return create_text_response(f"{message} simulated successfully.")


tool = ToolDefinition(
    name="swipe",
    description="Swipe from one point to another on the simulator screen.",
    schema=SwipeInput,
    handler=swipe_logic,
    annotations={"destructiveHint": True},
)
