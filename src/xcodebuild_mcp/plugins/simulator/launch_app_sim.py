"""Launch an installed app on a simulator."""

from __future__ import annotations

from typing import Any, Mapping

from ...core.plugin_types import ToolDefinition
from ...tooling.executors import CommandExecutionError, CommandExecutor
from ...tooling.responses import ToolResponse, create_text_response
from ...tooling.tool_schemas import LaunchAppSimulatorInput
from ..common import InvalidParamsError, failure_details, format_next_steps, parse_params, run_tool_command

NOT_INSTALLED_MESSAGE = (
    "App is not installed on the simulator. Install it with `xcrun simctl install` before launching.\n\n"
    "Workflow: build → install → launch."
)


async def launch_app_sim_logic(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
    try:
        parsed = parse_params(LaunchAppSimulatorInput, params, "launch_app_sim")
    except InvalidParamsError as exc:
        return exc.to_response()

    try:
        container = await run_tool_command(
            executor,
            ["xcrun", "simctl", "get_app_container", parsed.simulator_uuid, parsed.bundle_id, "app"],
            log_prefix="Check App Installed",
        )
        if not container.success:
            return create_text_response(NOT_INSTALLED_MESSAGE, is_error=True)

        command = ["xcrun", "simctl", "launch", parsed.simulator_uuid, parsed.bundle_id, *(parsed.args or [])]
        result = await run_tool_command(executor, command, log_prefix="Launch App in Simulator")
    except CommandExecutionError as exc:
        return create_text_response(f"Launch app in simulator operation failed: {exc}", is_error=True)
    if not result.success:
        return create_text_response(
            f"Launch app in simulator operation failed: {failure_details(result)}", is_error=True
        )

    next_steps = format_next_steps(
        [f'Interact with the UI: tap({{ simulator_uuid: "{parsed.simulator_uuid}", x: 100, y: 200 }})']
    )
    return create_text_response(f"App launched successfully in simulator {parsed.simulator_uuid}.\n\n{next_steps}")


tool = ToolDefinition(
    name="launch_app_sim",
    description="Launches an app in an iOS simulator. The app must already be installed.",
    schema=LaunchAppSimulatorInput,
    handler=launch_app_sim_logic,
)
