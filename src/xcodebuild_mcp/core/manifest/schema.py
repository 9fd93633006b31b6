"""
Pydantic models for the declarative tool and workflow manifest.

Nested sections (``names``, ``availability``, ``routing``, ``selection``) are
strict: unknown keys fail validation. This is how daemon-only fields such as
``availability.daemon`` or ``routing.daemonAffinity`` are refused in this
deployment.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError

__all__ = [
    "Availability",
    "NextStep",
    "ResolvedManifest",
    "SchemaValidationError",
    "ToolManifestEntry",
    "ToolNames",
    "ToolRouting",
    "WorkflowManifestEntry",
    "WorkflowSelection",
    "derive_cli_name",
    "get_effective_cli_name",
    "parse_tool_entry",
    "parse_workflow_entry",
]

_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[_\s-]+")


class SchemaValidationError(ValueError):
    """Raised when a manifest entry does not match the schema."""


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)


class ToolNames(_Section):
    mcp: str = Field(..., min_length=1)
    cli: str | None = Field(default=None, min_length=1)


class Availability(_Section):
    mcp: bool = True
    cli: bool = True


class ToolRouting(_Section):
    stateful: bool = False


class NextStep(_Section):
    label: str = Field(..., min_length=1)
    tool_id: str | None = Field(default=None, alias="toolId")
    params: Mapping[str, str | int | float | bool] = Field(default_factory=dict)


class McpSelection(_Section):
    default_enabled: bool = Field(default=False, alias="defaultEnabled")
    auto_include: bool = Field(default=False, alias="autoInclude")


class WorkflowSelection(_Section):
    mcp: McpSelection | None = None


class _Entry(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class ToolManifestEntry(_Entry):
    id: str = Field(..., min_length=1)
    module: str = Field(..., min_length=1)
    names: ToolNames
    description: str | None = None
    availability: Availability = Field(default_factory=Availability)
    predicates: Tuple[str, ...] = ()
    routing: ToolRouting | None = None
    next_steps: Tuple[NextStep, ...] = Field(default=(), alias="nextSteps")


class WorkflowManifestEntry(_Entry):
    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: str
    tools: Tuple[str, ...]
    availability: Availability = Field(default_factory=Availability)
    predicates: Tuple[str, ...] = ()
    selection: WorkflowSelection | None = None

    @property
    def default_enabled(self) -> bool:
        return bool(self.selection and self.selection.mcp and self.selection.mcp.default_enabled)

    @property
    def auto_include(self) -> bool:
        return bool(self.selection and self.selection.mcp and self.selection.mcp.auto_include)


@dataclass(slots=True, frozen=True)
class ResolvedManifest:
    """Validated catalog of tools and workflows keyed by id."""

    tools: Mapping[str, ToolManifestEntry]
    workflows: Mapping[str, WorkflowManifestEntry]


def _validate(model: type[_Entry], raw: Any, kind: str) -> Any:
    if not isinstance(raw, Mapping):
        raise SchemaValidationError(f"{kind} manifest entry must be a mapping, got {type(raw).__name__}.")
    try:
        return model.model_validate(dict(raw))
    except ValidationError as exc:
        raise SchemaValidationError(str(exc)) from exc


def parse_tool_entry(raw: Any) -> ToolManifestEntry:
    return _validate(ToolManifestEntry, raw, "Tool")


def parse_workflow_entry(raw: Any) -> WorkflowManifestEntry:
    return _validate(WorkflowManifestEntry, raw, "Workflow")


def derive_cli_name(mcp_name: str) -> str:
    """
    Derive a kebab-case CLI command name from an MCP tool name.

    ``build_sim`` and ``buildSim`` both become ``build-sim``; ``build_simApp``
    becomes ``build-sim-app``. Already kebab-case names are returned unchanged.
    """

    hyphenated = _CAMEL_BOUNDARY.sub(r"\1-\2", mcp_name)
    return _SEPARATORS.sub("-", hyphenated).lower()


def get_effective_cli_name(tool: ToolManifestEntry) -> str:
    return tool.names.cli or derive_cli_name(tool.names.mcp)
