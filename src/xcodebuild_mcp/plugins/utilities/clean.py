"""Clean build products with ``xcodebuild clean``."""

from __future__ import annotations

from typing import Any, Mapping

from ...core.plugin_types import ToolDefinition
from ...tooling.executors import CommandExecutionError, CommandExecutor
from ...tooling.responses import ToolResponse, create_text_response
from ...tooling.tool_schemas import CleanInput
from ..common import InvalidParamsError, failure_details, parse_params, run_tool_command


async def clean_logic(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
    try:
        parsed = parse_params(CleanInput, params, "clean")
    except InvalidParamsError as exc:
        return exc.to_response()

    command = ["xcodebuild", *parsed.target_args()]
    if parsed.scheme:
        command.extend(["-scheme", parsed.scheme])
    command.extend(["-configuration", parsed.configuration, "clean"])

    try:
        result = await run_tool_command(executor, command, log_prefix="Clean")
    except CommandExecutionError as exc:
        return create_text_response(f"Error during Clean: {exc}", is_error=True)
    if not result.success:
        return create_text_response(f"Clean failed: {failure_details(result)}", is_error=True)

    target = f"scheme {parsed.scheme}" if parsed.scheme else "the default target"
    return create_text_response(f"Clean succeeded for {target}.")


tool = ToolDefinition(
    name="clean",
    description="Cleans build products for a project or workspace using xcodebuild.",
    schema=CleanInput,
    handler=clean_logic,
    annotations={"destructiveHint": True},
)
