"""
Workflow catalog: lazy tool loaders plus eagerly available metadata.

``build_catalog`` turns a ``ResolvedManifest`` into one loader per workflow.
Calling a loader imports that workflow's tool modules and returns a bundle
``{"workflow": WorkflowMeta, <tool id>: ToolDefinition, ...}``. Workflow
metadata is built from the manifest alone, so descriptions can be shown without
importing any tool code.
"""

from __future__ import annotations

import asyncio
import importlib
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Iterator, Mapping

from ..tooling.config import PACKAGE_MANIFESTS_DIR
from ..visibility.exposure import is_tool_exposed_for_runtime
from ..visibility.predicates import PredicateContext
from .manifest import (
    ManifestValidationError,
    ResolvedManifest,
    ToolManifestEntry,
    WorkflowManifestEntry,
    load_manifest,
    module_import_path,
)
from .plugin_types import ToolDefinition, WorkflowMeta

LOGGER = logging.getLogger(__name__)

WORKFLOW_KEY = "workflow"

__all__ = [
    "ToolCatalog",
    "WORKFLOW_KEY",
    "WORKFLOW_LOADERS",
    "WORKFLOW_METADATA",
    "WorkflowBundle",
    "WorkflowLoader",
    "build_catalog",
    "generate_workflow_descriptions",
    "get_available_workflows",
    "get_default_catalog",
    "iter_tool_entries",
    "load_tool_definition",
]

WorkflowBundle = Mapping[str, Any]
WorkflowLoader = Callable[[], Awaitable[WorkflowBundle]]


@dataclass(slots=True)
class ToolCatalog:
    loaders: dict[str, WorkflowLoader] = field(default_factory=dict)
    metadata: dict[str, WorkflowMeta] = field(default_factory=dict)


def load_tool_definition(entry: ToolManifestEntry) -> ToolDefinition:
    """Import the module behind ``entry`` and return its ``tool`` with manifest overrides applied."""

    module = importlib.import_module(module_import_path(entry.module))
    definition = getattr(module, "tool", None)
    if not isinstance(definition, ToolDefinition):
        raise ManifestValidationError(f"Module '{entry.module}' does not define a ToolDefinition named 'tool'")
    overrides: dict[str, Any] = {"name": entry.names.mcp}
    if entry.description:
        overrides["description"] = entry.description
    return replace(definition, **overrides)


def _workflow_meta(workflow: WorkflowManifestEntry) -> WorkflowMeta:
    return WorkflowMeta(name=workflow.title, description=workflow.description)


def _make_loader(
    manifest: ResolvedManifest,
    workflow: WorkflowManifestEntry,
    ctx: PredicateContext | None,
) -> WorkflowLoader:
    entries = [manifest.tools[tool_id] for tool_id in workflow.tools]
    if ctx is not None:
        entries = [entry for entry in entries if is_tool_exposed_for_runtime(entry, ctx)]
    meta = _workflow_meta(workflow)

    def _import_all() -> dict[str, Any]:
        bundle: dict[str, Any] = {WORKFLOW_KEY: meta}
        for entry in entries:
            bundle[entry.id] = load_tool_definition(entry)
        return bundle

    async def loader() -> WorkflowBundle:
        LOGGER.debug("Loading workflow %s (%s tools)", workflow.id, len(entries))
        return await asyncio.to_thread(_import_all)

    return loader


def build_catalog(manifest: ResolvedManifest, ctx: PredicateContext | None = None) -> ToolCatalog:
    """
    Build one loader per workflow of ``manifest``.

    With ``ctx`` each loader only imports the tools exposed for that runtime
    context; without it every tool of the workflow is loaded.
    """

    catalog = ToolCatalog()
    for workflow in manifest.workflows.values():
        catalog.loaders[workflow.id] = _make_loader(manifest, workflow, ctx)
        catalog.metadata[workflow.id] = _workflow_meta(workflow)
    return catalog


def iter_tool_entries(bundle: WorkflowBundle) -> Iterator[tuple[str, Any]]:
    for key, entry in bundle.items():
        if key != WORKFLOW_KEY:
            yield key, entry


_DEFAULT_CATALOG = build_catalog(load_manifest(PACKAGE_MANIFESTS_DIR))

WORKFLOW_LOADERS: Mapping[str, WorkflowLoader] = _DEFAULT_CATALOG.loaders
WORKFLOW_METADATA: Mapping[str, WorkflowMeta] = _DEFAULT_CATALOG.metadata


def get_default_catalog() -> ToolCatalog:
    return _DEFAULT_CATALOG


def get_available_workflows(catalog: ToolCatalog | None = None) -> list[str]:
    return list((catalog or _DEFAULT_CATALOG).loaders)


def generate_workflow_descriptions(catalog: ToolCatalog | None = None) -> str:
    """One ``- **WORKFLOW-ID**: description`` line per workflow, in catalog order.

    The label is the upper-cased workflow id, the same name ``manage_workflows`` accepts.
    """

    metadata = (catalog or _DEFAULT_CATALOG).metadata
    return "\n".join(f"- **{workflow_id.upper()}**: {meta.description}" for workflow_id, meta in metadata.items())
