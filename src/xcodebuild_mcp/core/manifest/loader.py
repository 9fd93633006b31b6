"""
Load and cross-check the YAML tool and workflow manifest.

The manifest directory holds two subdirectories, ``tools/`` and ``workflows/``.
Each ``*.yaml`` / ``*.yml`` file contains either one entry mapping or a list of
them. ``load_manifest`` either returns a fully validated ``ResolvedManifest`` or
raises ``ManifestValidationError``; a partial manifest is never produced.
"""

from __future__ import annotations

import importlib.util
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Sequence

import yaml

from ...tooling.config import load_runtime_config
from ...visibility.predicates import is_valid_predicate
from .schema import (
    ResolvedManifest,
    SchemaValidationError,
    ToolManifestEntry,
    WorkflowManifestEntry,
    parse_tool_entry,
    parse_workflow_entry,
)

LOGGER = logging.getLogger(__name__)

PACKAGE_NAME = __name__.split(".")[0]
_MANIFEST_SUFFIXES = (".yaml", ".yml")

__all__ = [
    "ManifestValidationError",
    "get_tools_for_workflows",
    "get_workflow_metadata_from_manifest",
    "get_workflow_tools",
    "load_manifest",
    "module_import_path",
    "validate_tool_modules",
]


class ManifestValidationError(RuntimeError):
    """Raised when the manifest cannot be loaded or fails cross-reference checks."""

    def __init__(self, message: str, source_file: str | Path | None = None) -> None:
        self.message = message
        self.source_file = str(source_file) if source_file is not None else None
        super().__init__(f"{message} (in {self.source_file})" if self.source_file else message)


def _manifest_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        LOGGER.debug("Manifest directory %s does not exist; treating it as empty.", directory)
        return []
    return sorted(path for path in directory.iterdir() if path.is_file() and path.suffix in _MANIFEST_SUFFIXES)


def _read_entries(path: Path) -> list[Any]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle)
    except yaml.YAMLError as exc:
        raise ManifestValidationError(f"Invalid YAML: {exc}", path) from exc
    except OSError as exc:
        raise ManifestValidationError(f"Unable to read manifest file: {exc}", path) from exc
    if data is None:
        return []
    if isinstance(data, list):
        return data
    return [data]


def _check_predicates(kind: str, entry_id: str, predicates: Iterable[str], source: Path) -> None:
    for name in predicates:
        if not is_valid_predicate(name):
            raise ManifestValidationError(f"Unknown predicate '{name}' in {kind} '{entry_id}'", source)


def _load_tools(directory: Path) -> tuple[dict[str, ToolManifestEntry], dict[str, Path]]:
    tools: dict[str, ToolManifestEntry] = {}
    sources: dict[str, Path] = {}
    for path in _manifest_files(directory):
        for raw in _read_entries(path):
            try:
                tool = parse_tool_entry(raw)
            except SchemaValidationError as exc:
                raise ManifestValidationError(f"Invalid tool manifest: {exc}", path) from exc
            if tool.id in tools:
                raise ManifestValidationError(
                    f"Duplicate tool ID '{tool.id}' (first defined in {sources[tool.id]})", path
                )
            _check_predicates("tool", tool.id, tool.predicates, path)
            tools[tool.id] = tool
            sources[tool.id] = path
    return tools, sources


def _load_workflows(directory: Path) -> tuple[dict[str, WorkflowManifestEntry], dict[str, Path]]:
    workflows: dict[str, WorkflowManifestEntry] = {}
    sources: dict[str, Path] = {}
    for path in _manifest_files(directory):
        for raw in _read_entries(path):
            try:
                workflow = parse_workflow_entry(raw)
            except SchemaValidationError as exc:
                raise ManifestValidationError(f"Invalid workflow manifest: {exc}", path) from exc
            if workflow.id in workflows:
                raise ManifestValidationError(
                    f"Duplicate workflow ID '{workflow.id}' (first defined in {sources[workflow.id]})", path
                )
            _check_predicates("workflow", workflow.id, workflow.predicates, path)
            workflows[workflow.id] = workflow
            sources[workflow.id] = path
    return workflows, sources


def _check_references(
    tools: Mapping[str, ToolManifestEntry],
    tool_sources: Mapping[str, Path],
    workflows: Mapping[str, WorkflowManifestEntry],
    workflow_sources: Mapping[str, Path],
) -> None:
    for workflow in workflows.values():
        for tool_id in workflow.tools:
            if tool_id not in tools:
                raise ManifestValidationError(
                    f"Workflow '{workflow.id}' references unknown tool '{tool_id}'",
                    workflow_sources[workflow.id],
                )

    mcp_names: dict[str, str] = {}
    for tool in tools.values():
        owner = mcp_names.get(tool.names.mcp)
        if owner is not None:
            raise ManifestValidationError(
                f"Duplicate MCP name '{tool.names.mcp}' used by tools '{owner}' and '{tool.id}'",
                tool_sources[tool.id],
            )
        mcp_names[tool.names.mcp] = tool.id

    for tool in tools.values():
        for step in tool.next_steps:
            if step.tool_id and step.tool_id not in tools:
                raise ManifestValidationError(
                    f"Tool '{tool.id}' next step '{step.label}' references unknown tool '{step.tool_id}'",
                    tool_sources[tool.id],
                )


def load_manifest(manifests_dir: str | Path | None = None) -> ResolvedManifest:
    """
    Read every tool and workflow manifest file and validate the whole catalog.

    ``manifests_dir`` defaults to the configured manifest directory, which is
    the copy shipped inside the package unless overridden.
    """

    root = Path(manifests_dir) if manifests_dir is not None else load_runtime_config().manifests_dir
    if not root.is_dir():
        raise ManifestValidationError(f"Manifest directory not found: {root}")

    tools, tool_sources = _load_tools(root / "tools")
    workflows, workflow_sources = _load_workflows(root / "workflows")
    _check_references(tools, tool_sources, workflows, workflow_sources)

    LOGGER.debug("Loaded manifest from %s: %s tools, %s workflows", root, len(tools), len(workflows))
    return ResolvedManifest(tools=MappingProxyType(tools), workflows=MappingProxyType(workflows))


def module_import_path(module: str) -> str:
    """Map a manifest module reference such as ``plugins/simulator/boot_sim`` to a dotted path."""

    reference = module.strip()
    if reference.endswith(".py"):
        reference = reference[: -len(".py")]
    reference = reference.removeprefix("./").strip("/").replace("/", ".")
    if reference == PACKAGE_NAME or reference.startswith(PACKAGE_NAME + "."):
        return reference
    return f"{PACKAGE_NAME}.{reference}"


def validate_tool_modules(manifest: ResolvedManifest) -> None:
    """Fail when a tool module cannot be located on the import path. Modules are not imported."""

    for tool in manifest.tools.values():
        dotted = module_import_path(tool.module)
        try:
            spec = importlib.util.find_spec(dotted)
        except (ImportError, ValueError):
            spec = None
        if spec is None:
            raise ManifestValidationError(f"Tool '{tool.id}' references missing module '{tool.module}'")


def get_workflow_tools(manifest: ResolvedManifest, workflow_id: str) -> list[ToolManifestEntry]:
    workflow = manifest.workflows.get(workflow_id)
    if workflow is None:
        return []
    return [manifest.tools[tool_id] for tool_id in workflow.tools if tool_id in manifest.tools]


def get_tools_for_workflows(manifest: ResolvedManifest, workflow_ids: Sequence[str]) -> list[ToolManifestEntry]:
    """Union of the tools of ``workflow_ids``, first occurrence wins."""

    seen: set[str] = set()
    result: list[ToolManifestEntry] = []
    for workflow_id in workflow_ids:
        for tool in get_workflow_tools(manifest, workflow_id):
            if tool.id in seen:
                continue
            seen.add(tool.id)
            result.append(tool)
    return result


def get_workflow_metadata_from_manifest(manifest: ResolvedManifest | None = None) -> dict[str, dict[str, str]]:
    resolved = manifest or load_manifest()
    return {
        workflow.id: {"name": workflow.title, "description": workflow.description}
        for workflow in resolved.workflows.values()
    }
