"""Show the build settings of a scheme."""

from __future__ import annotations

from typing import Any, Mapping

from ...core.plugin_types import ToolDefinition
from ...tooling.executors import CommandExecutionError, CommandExecutor
from ...tooling.responses import TextContent, ToolResponse, create_text_response
from ...tooling.tool_schemas import ShowBuildSettingsInput
from ..common import InvalidParamsError, failure_details, parse_params, run_tool_command


async def show_build_settings_logic(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
    try:
        parsed = parse_params(ShowBuildSettingsInput, params, "show_build_settings")
    except InvalidParamsError as exc:
        return exc.to_response()

    command = ["xcodebuild", "-showBuildSettings", *parsed.target_args(), "-scheme", parsed.scheme]
    try:
        result = await run_tool_command(executor, command, log_prefix="Show Build Settings")
    except CommandExecutionError as exc:
        return create_text_response(f"Error showing build settings: {exc}", is_error=True)
    if not result.success:
        return create_text_response(f"Failed to show build settings: {failure_details(result)}", is_error=True)

    return ToolResponse(
        content=[
            TextContent(text=f"Build settings for scheme {parsed.scheme}:"),
            TextContent(text=result.stdout.strip() or "Build settings retrieved successfully."),
        ]
    )


tool = ToolDefinition(
    name="show_build_settings",
    description="Shows xcodebuild build settings for a scheme of a project or workspace.",
    schema=ShowBuildSettingsInput,
    handler=show_build_settings_logic,
    annotations={"readOnlyHint": True},
)
