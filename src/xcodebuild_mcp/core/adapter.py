"""Bridge ``(params, executor)`` tool handlers to the host's one-argument callbacks."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Mapping

from ..tooling.executors import get_default_command_executor
from ..tooling.responses import ToolResponse

__all__ = ["HostCallback", "wrap_handler_with_executor"]

HostCallback = Callable[[Mapping[str, Any]], Awaitable[ToolResponse]]


def wrap_handler_with_executor(handler: Callable[..., Any]) -> HostCallback:
    """
    Return a callback that invokes ``handler(params, executor)``.

    The executor is looked up when the callback runs, not when it is created,
    so replacing the default executor affects tools that are already live.
    """

    async def callback(params: Mapping[str, Any]) -> ToolResponse:
        result = handler(params, get_default_command_executor())
        if inspect.isawaitable(result):
            result = await result
        return result

    callback.__name__ = getattr(handler, "__name__", "tool_callback")
    callback.__doc__ = getattr(handler, "__doc__", None)
    return callback
