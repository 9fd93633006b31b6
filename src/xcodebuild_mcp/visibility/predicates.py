"""
Named predicates that gate tools and workflows.

Manifest entries list predicate names; an entry is exposed only when every one
of its predicates holds for the current ``PredicateContext``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Literal, Mapping

from ..tooling.config import RuntimeConfig

__all__ = [
    "PREDICATES",
    "PredicateContext",
    "RuntimeKind",
    "eval_predicates",
    "get_predicate_names",
    "is_valid_predicate",
]

RuntimeKind = Literal["mcp", "cli"]


@dataclass(slots=True, frozen=True)
class PredicateContext:
    runtime: RuntimeKind = "mcp"
    config: RuntimeConfig = field(default_factory=RuntimeConfig)
    running_under_xcode: bool = False

    @classmethod
    def from_config(cls, config: RuntimeConfig, runtime: RuntimeKind = "mcp") -> "PredicateContext":
        return cls(runtime=runtime, config=config, running_under_xcode=config.running_under_xcode)


Predicate = Callable[[PredicateContext], bool]

PREDICATES: Mapping[str, Predicate] = {
    "debugEnabled": lambda ctx: ctx.config.debug,
    "experimentalWorkflowDiscoveryEnabled": lambda ctx: ctx.config.experimental_workflow_discovery,
    "runningUnderXcodeAgent": lambda ctx: ctx.running_under_xcode,
    "mcpRuntimeOnly": lambda ctx: ctx.runtime == "mcp",
    "hideWhenXcodeAgentMode": lambda ctx: not ctx.running_under_xcode,
    "xcodeAutoSyncDisabled": lambda ctx: ctx.running_under_xcode and ctx.config.disable_xcode_auto_sync,
    "always": lambda ctx: True,
    "never": lambda ctx: False,
}


def is_valid_predicate(name: str) -> bool:
    return name in PREDICATES


def get_predicate_names() -> tuple[str, ...]:
    return tuple(PREDICATES)


def eval_predicates(names: Iterable[str] | None, ctx: PredicateContext) -> bool:
    """Return True when every named predicate passes; an empty list always passes."""

    for name in names or ():
        predicate = PREDICATES.get(name)
        if predicate is None:
            raise ValueError(f"Unknown predicate '{name}'")
        if not predicate(ctx):
            return False
    return True
