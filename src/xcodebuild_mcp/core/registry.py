"""
Bookkeeping of which workflows and tools are live on a server.

A ``RegistrationTracker`` belongs to exactly one server handle. It records each
registered tool name together with the workflow that contributed it, so a later
replace-mode activation can remove precisely those tools.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

LOGGER = logging.getLogger(__name__)

__all__ = ["RegistrationTracker", "ToolRemover"]

ToolRemover = Callable[[str], Any]


class RegistrationTracker:
    """Enabled workflows (insertion ordered) and ``tool name -> workflow`` ownership."""

    def __init__(self) -> None:
        self._workflows: dict[str, None] = {}
        self._tools: dict[str, str] = {}

    def is_tool_registered(self, name: str) -> bool:
        return name in self._tools

    def record_registration(self, tool_name: str, workflow_name: str) -> None:
        self._tools[tool_name] = workflow_name

    def mark_workflow_enabled(self, workflow_name: str) -> None:
        self._workflows.setdefault(workflow_name, None)

    def get_enabled_workflows(self) -> list[str]:
        return list(self._workflows)

    def get_enabled_tools(self) -> dict[str, str]:
        return dict(self._tools)

    def reset(self) -> None:
        self._workflows.clear()
        self._tools.clear()

    async def clear_enabled_workflows(self, remover: ToolRemover | None = None) -> None:
        """
        Forget every enabled workflow and tool.

        With ``remover`` each tracked tool is removed from the host first; a
        failing removal is logged and the clear carries on. Without it only the
        bookkeeping is reset and the host keeps the tools it already exposes.
        """

        if not self._workflows and not self._tools:
            LOGGER.debug("No workflows enabled; nothing to clear.")
            return

        LOGGER.info("Clearing %s enabled workflows and %s tools", len(self._workflows), len(self._tools))
        if remover is not None:
            for name in list(self._tools):
                try:
                    result = remover(name)
                    if inspect.isawaitable(result):
                        await result
                except Exception as exc:
                    LOGGER.warning("Failed to remove tool '%s': %s", name, exc)
        else:
            LOGGER.debug("Host has no removal primitive; previously registered tools remain exposed.")
        self.reset()
