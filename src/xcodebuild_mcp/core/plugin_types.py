"""Shapes shared by tool modules and the workflow catalog."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Tuple

from pydantic import BaseModel

from ..tooling.executors import CommandExecutor
from ..tooling.responses import ToolResponse

__all__ = ["ToolDefinition", "ToolHandler", "WorkflowMeta"]

ToolHandler = Callable[[Mapping[str, Any], CommandExecutor], Awaitable[ToolResponse]]


@dataclass(slots=True, frozen=True)
class ToolDefinition:
    """A tool implementation: its public name, schema and ``(params, executor)`` handler."""

    name: str
    description: str
    schema: type[BaseModel] | None
    handler: ToolHandler
    annotations: Mapping[str, Any] | None = None


@dataclass(slots=True, frozen=True)
class WorkflowMeta:
    """Metadata describing a workflow, available before its tools are imported."""

    name: str
    description: str
    platforms: Tuple[str, ...] = ()
