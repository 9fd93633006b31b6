"""Build an app for an iOS simulator with ``xcodebuild``."""

from __future__ import annotations

from typing import Any, Mapping

from ...core.plugin_types import ToolDefinition
from ...tooling.executors import CommandExecutionError, CommandExecutor
from ...tooling.responses import TextContent, ToolResponse, create_text_response
from ...tooling.tool_schemas import BuildSimulatorInput
from ..common import InvalidParamsError, format_next_steps, parse_params, run_tool_command

PLATFORM = "iOS Simulator"
TAIL_LINES = 20


def destination_for(parsed: BuildSimulatorInput) -> str:
    if parsed.simulator_id:
        return f"platform={PLATFORM},id={parsed.simulator_id}"
    destination = f"platform={PLATFORM},name={parsed.simulator_name}"
    if parsed.use_latest_os:
        destination += ",OS=latest"
    return destination


def build_command(parsed: BuildSimulatorInput) -> list[str]:
    command = [
        "xcodebuild",
        *parsed.target_args(),
        "-scheme",
        parsed.scheme,
        "-configuration",
        parsed.configuration,
        "-skipMacroValidation",
        "-destination",
        destination_for(parsed),
    ]
    command.extend(parsed.extra_args or [])
    command.append("build")
    return command


def _tail(output: str) -> str:
    return "\n".join(output.strip().splitlines()[-TAIL_LINES:])


async def build_sim_logic(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
    try:
        parsed = parse_params(BuildSimulatorInput, params, "build_sim")
    except InvalidParamsError as exc:
        return exc.to_response()

    try:
        result = await run_tool_command(executor, build_command(parsed), log_prefix=f"{PLATFORM} Build")
    except CommandExecutionError as exc:
        return create_text_response(f"Error during {PLATFORM} Build build: {exc}", is_error=True)

    if not result.success:
        return ToolResponse(
            content=[
                TextContent(text=f"{PLATFORM} Build build failed for scheme {parsed.scheme}."),
                TextContent(text=_tail(result.stderr or result.stdout) or f"exit code {result.exit_code}"),
            ],
            is_error=True,
        )

    target = parsed.simulator_id or parsed.simulator_name
    next_steps = format_next_steps(
        [
            f'Boot the simulator if needed: boot_sim({{ simulator_uuid: "{target}" }})',
            f'Launch the app: launch_app_sim({{ simulator_uuid: "{target}", bundle_id: "YOUR_APP_BUNDLE_ID" }})',
        ]
    )
    return ToolResponse(
        content=[
            TextContent(text=f"{PLATFORM} Build build succeeded for scheme {parsed.scheme}."),
            TextContent(text=next_steps),
        ]
    )


tool = ToolDefinition(
    name="build_sim",
    description=(
        "Builds an app from a project or workspace for a specific simulator, "
        "selected either by UUID or by name."
    ),
    schema=BuildSimulatorInput,
    handler=build_sim_logic,
)
