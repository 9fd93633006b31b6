"""Decide which workflows and tools a runtime exposes."""

from __future__ import annotations

from typing import Iterable, Sequence

from ..core.manifest.schema import ToolManifestEntry, WorkflowManifestEntry
from .predicates import PredicateContext, RuntimeKind, eval_predicates

__all__ = [
    "filter_enabled_workflows",
    "get_auto_include_workflows",
    "get_default_enabled_workflows",
    "is_tool_available_for_runtime",
    "is_tool_exposed_for_runtime",
    "is_workflow_available_for_runtime",
    "is_workflow_enabled_for_runtime",
    "select_workflows_for_mcp",
]


def is_workflow_available_for_runtime(workflow: WorkflowManifestEntry, runtime: RuntimeKind) -> bool:
    return workflow.availability.mcp if runtime == "mcp" else workflow.availability.cli


def is_workflow_enabled_for_runtime(workflow: WorkflowManifestEntry, ctx: PredicateContext) -> bool:
    return is_workflow_available_for_runtime(workflow, ctx.runtime) and eval_predicates(workflow.predicates, ctx)


def is_tool_available_for_runtime(tool: ToolManifestEntry, runtime: RuntimeKind) -> bool:
    return tool.availability.mcp if runtime == "mcp" else tool.availability.cli


def is_tool_exposed_for_runtime(tool: ToolManifestEntry, ctx: PredicateContext) -> bool:
    return is_tool_available_for_runtime(tool, ctx.runtime) and eval_predicates(tool.predicates, ctx)


def filter_enabled_workflows(
    workflows: Iterable[WorkflowManifestEntry], ctx: PredicateContext
) -> list[WorkflowManifestEntry]:
    return [workflow for workflow in workflows if is_workflow_enabled_for_runtime(workflow, ctx)]


def get_default_enabled_workflows(workflows: Iterable[WorkflowManifestEntry]) -> list[WorkflowManifestEntry]:
    return [workflow for workflow in workflows if workflow.default_enabled]


def get_auto_include_workflows(
    workflows: Iterable[WorkflowManifestEntry], ctx: PredicateContext
) -> list[WorkflowManifestEntry]:
    return [workflow for workflow in workflows if workflow.auto_include and eval_predicates(workflow.predicates, ctx)]


def select_workflows_for_mcp(
    workflows: Sequence[WorkflowManifestEntry],
    requested: Sequence[str] | None,
    ctx: PredicateContext,
) -> list[WorkflowManifestEntry]:
    """
    Choose the workflows an MCP server starts with.

    Auto-include workflows whose predicates pass always come first. They are
    followed by the requested workflows or, when nothing was requested, by the
    default-enabled ones. Unknown requested ids are ignored. The result is
    filtered by availability and predicates and contains no duplicates.
    """

    by_id = {workflow.id: workflow for workflow in workflows}
    selected: list[WorkflowManifestEntry] = list(get_auto_include_workflows(workflows, ctx))

    if requested:
        selected.extend(by_id[workflow_id] for workflow_id in requested if workflow_id in by_id)
    else:
        selected.extend(get_default_enabled_workflows(workflows))

    seen: set[str] = set()
    result: list[WorkflowManifestEntry] = []
    for workflow in selected:
        if workflow.id in seen or not is_workflow_enabled_for_runtime(workflow, ctx):
            continue
        seen.add(workflow.id)
        result.append(workflow)
    return result
