"""List the simulators known to ``simctl``."""

from __future__ import annotations

import json
import logging
from typing import Any, Mapping

from ...core.plugin_types import ToolDefinition
from ...tooling.executors import CommandExecutionError, CommandExecutor
from ...tooling.responses import ToolResponse, create_text_response
from ...tooling.tool_schemas import ListSimulatorsInput
from ..common import InvalidParamsError, failure_details, format_next_steps, parse_params, run_tool_command

LOGGER = logging.getLogger(__name__)

NEXT_STEPS = (
    "Boot a simulator: boot_sim({ simulator_uuid: 'UUID_FROM_ABOVE' })",
    "Build for simulator: build_sim({ scheme: 'YOUR_SCHEME', simulator_id: 'UUID_FROM_ABOVE' })",
    "Launch an app: launch_app_sim({ simulator_uuid: 'UUID_FROM_ABOVE', bundle_id: 'YOUR_BUNDLE_ID' })",
)


def format_simulators(devices: Mapping[str, Any], include_unavailable: bool = False) -> str:
    lines = ["Available iOS Simulators:"]
    for runtime, entries in devices.items():
        shown = [entry for entry in entries if include_unavailable or entry.get("isAvailable", True)]
        if not shown:
            continue
        lines.append("")
        lines.append(f"{runtime}:")
        for entry in shown:
            line = f"- {entry.get('name')} ({entry.get('udid')})"
            if entry.get("state") == "Booted":
                line += " [Booted]"
            lines.append(line)
    return "\n".join(lines)


async def list_sims_logic(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
    try:
        parsed = parse_params(ListSimulatorsInput, params, "list_sims")
    except InvalidParamsError as exc:
        return exc.to_response()

    command = ["xcrun", "simctl", "list", "devices"]
    if not parsed.include_unavailable:
        command.append("available")
    command.append("--json")
    try:
        result = await run_tool_command(executor, command, log_prefix="List Simulators")
    except CommandExecutionError as exc:
        return create_text_response(f"Failed to list simulators: {exc}", is_error=True)
    if not result.success:
        return create_text_response(f"Failed to list simulators: {failure_details(result)}", is_error=True)

    try:
        devices = json.loads(result.stdout).get("devices", {})
    except (json.JSONDecodeError, AttributeError):
        LOGGER.debug("simctl returned non-JSON output; passing it through")
        return create_text_response(result.stdout)

    listing = format_simulators(devices, parsed.include_unavailable)
    return create_text_response(f"{listing}\n\n{format_next_steps(NEXT_STEPS)}")


tool = ToolDefinition(
    name="list_sims",
    description="Lists available iOS simulators with their UUIDs.",
    schema=ListSimulatorsInput,
    handler=list_sims_logic,
    annotations={"readOnlyHint": True},
)
