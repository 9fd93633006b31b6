"""Boot a simulator by UUID."""

from __future__ import annotations

from typing import Any, Mapping

from ...core.plugin_types import ToolDefinition
from ...tooling.executors import CommandExecutionError, CommandExecutor
from ...tooling.responses import ToolResponse, create_text_response
from ...tooling.tool_schemas import BootSimulatorInput
from ..common import InvalidParamsError, failure_details, format_next_steps, parse_params, run_tool_command


async def boot_sim_logic(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
    try:
        parsed = parse_params(BootSimulatorInput, params, "boot_sim")
    except InvalidParamsError as exc:
        return exc.to_response()

    command = ["xcrun", "simctl", "boot", parsed.simulator_uuid]
    try:
        result = await run_tool_command(executor, command, log_prefix="Boot Simulator")
    except CommandExecutionError as exc:
        return create_text_response(f"Boot simulator operation failed: {exc}", is_error=True)
    if not result.success:
        return create_text_response(f"Boot simulator operation failed: {failure_details(result)}", is_error=True)

    next_steps = format_next_steps(
        [
            f'Launch an app: launch_app_sim({{ simulator_uuid: "{parsed.simulator_uuid}", bundle_id: "YOUR_APP_BUNDLE_ID" }})',
            f'Tap on screen: tap({{ simulator_uuid: "{parsed.simulator_uuid}", x: 100, y: 200 }})',
        ]
    )
    return create_text_response(f"Simulator booted successfully.\n\n{next_steps}")


tool = ToolDefinition(
    name="boot_sim",
    description="Boots an iOS simulator. Use list_sims to find the simulator UUID.",
    schema=BootSimulatorInput,
    handler=boot_sim_logic,
)
