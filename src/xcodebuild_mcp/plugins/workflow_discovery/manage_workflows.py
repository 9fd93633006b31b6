"""Let the client enable further workflows on the running server."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from ...core.dynamic_tools import enable_workflows, get_enabled_workflows
from ...core.plugin_types import ToolDefinition
from ...server import get_active_server
from ...tooling.executors import CommandExecutor
from ...tooling.responses import ToolResponse, create_error_response, create_text_response
from ...tooling.tool_schemas import ManageWorkflowsInput
from ..common import InvalidParamsError, parse_params

LOGGER = logging.getLogger(__name__)

DISCOVERY_WORKFLOW = "workflow-discovery"


async def manage_workflows_logic(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
    try:
        parsed = parse_params(ManageWorkflowsInput, params, "manage_workflows")
    except InvalidParamsError as exc:
        return exc.to_response()

    active = get_active_server()
    if active is None:
        return create_error_response("No active server; workflows cannot be changed.")

    available = list(active.catalog.loaders)
    unknown = [name for name in parsed.workflow_names if name not in active.catalog.loaders]
    if unknown:
        return create_error_response(
            f"Unknown workflows: {', '.join(unknown)}",
            f"Available workflows: {', '.join(available)}",
        )

    requested = list(dict.fromkeys(parsed.workflow_names))
    if not parsed.additive and DISCOVERY_WORKFLOW in available and DISCOVERY_WORKFLOW not in requested:
        requested.insert(0, DISCOVERY_WORKFLOW)

    LOGGER.info("Enabling workflows %s (additive=%s)", requested, parsed.additive)
    await enable_workflows(active.host, requested, parsed.additive, catalog=active.catalog)
    enabled = get_enabled_workflows(active.host)
    return create_text_response(f"Workflows enabled: {', '.join(enabled)}")


tool = ToolDefinition(
    name="manage_workflows",
    description=(
        "Enables additional workflows at runtime. By default the given workflows are added to the "
        "enabled set; pass additive=false to replace it."
    ),
    schema=ManageWorkflowsInput,
    handler=manage_workflows_logic,
)
