"""List the schemes of an Xcode project or workspace."""

from __future__ import annotations

from typing import Any, Mapping

from ...core.plugin_types import ToolDefinition
from ...tooling.executors import CommandExecutionError, CommandExecutor
from ...tooling.responses import TextContent, ToolResponse, create_text_response
from ...tooling.tool_schemas import ListSchemesInput
from ..common import InvalidParamsError, failure_details, format_next_steps, parse_params, run_tool_command


def parse_schemes(output: str) -> list[str]:
    """Return the entries of the ``Schemes:`` section of ``xcodebuild -list`` output."""

    schemes: list[str] = []
    in_section = False
    for line in output.splitlines():
        stripped = line.strip()
        if stripped == "Schemes:":
            in_section = True
            continue
        if not in_section or not stripped:
            continue
        if stripped.endswith(":"):
            break
        schemes.append(stripped)
    return schemes


async def list_schemes_logic(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
    try:
        parsed = parse_params(ListSchemesInput, params, "list_schemes")
    except InvalidParamsError as exc:
        return exc.to_response()

    command = ["xcodebuild", "-list", *parsed.target_args()]
    try:
        result = await run_tool_command(executor, command, log_prefix="List Schemes")
    except CommandExecutionError as exc:
        return create_text_response(f"Error listing schemes: {exc}", is_error=True)
    if not result.success:
        return create_text_response(f"Failed to list schemes: {failure_details(result)}", is_error=True)

    schemes = parse_schemes(result.stdout)
    if not schemes:
        return create_text_response("No schemes found in the output", is_error=True)

    target = ", ".join(f'{key}: "{value}"' for key, value in parsed.model_dump(exclude_none=True).items())
    next_steps = format_next_steps(
        [
            f'Build for a simulator: build_sim({{ {target}, scheme: "{schemes[0]}", simulator_name: "iPhone 16" }})',
            f'Show build settings: show_build_settings({{ {target}, scheme: "{schemes[0]}" }})',
        ]
    )
    return ToolResponse(
        content=[
            TextContent(text="Available schemes:"),
            TextContent(text="\n".join(schemes)),
            TextContent(text=next_steps),
        ]
    )


tool = ToolDefinition(
    name="list_schemes",
    description="Lists the available schemes of an Xcode project or workspace.",
    schema=ListSchemesInput,
    handler=list_schemes_logic,
    annotations={"readOnlyHint": True},
)
