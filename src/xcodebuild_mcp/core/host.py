"""
Host capabilities and the bundled MCP host.

The activation engine only needs a handful of primitives from the server it
registers tools on. Servers come in three shapes:

* ``BULK``: ``register_tools(registrations)`` registers many tools at once and
  emits the tool-list-changed notification itself.
* ``SINGLE``: ``register_tool(name, config, callback)``.
* ``LEGACY``: ``tool(name, description, schema, callback)``.

Removal (``remove_tool``) and manual notification (``send_tool_list_changed``
or ``notify_tools_changed``) are optional. ``ServerHandle`` inspects a server
once, remembers its shape and owns the ``RegistrationTracker`` for it.

``McpHost`` is the server used in production: it implements the bulk, single
and removal primitives on top of the ``mcp`` SDK's low-level ``Server``.
"""

from __future__ import annotations

import inspect
import logging
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Mapping, Sequence, Union

from mcp import types
from mcp.server.lowlevel import NotificationOptions, Server
from pydantic import BaseModel, ValidationError

from .. import __version__
from ..tooling.responses import ToolResponse, create_error_response
from ..tooling.tool_schemas import input_json_schema
from .registry import RegistrationTracker

LOGGER = logging.getLogger(__name__)

__all__ = [
    "McpHost",
    "RegistrarKind",
    "ServerHandle",
    "ToolCallFailedError",
    "ToolConfig",
    "ToolRegistration",
    "UnknownToolError",
]

ToolCallback = Callable[[Mapping[str, Any]], Awaitable[ToolResponse]]
SchemaNode = Union[type[BaseModel], Mapping[str, Any], None]


class UnknownToolError(LookupError):
    """Raised when a call names a tool the host does not expose."""


class ToolCallFailedError(RuntimeError):
    """Raised to hand an error ``ToolResponse`` back to the MCP client."""


class RegistrarKind(str, Enum):
    BULK = "bulk"
    SINGLE = "single"
    LEGACY = "legacy"


@dataclass(slots=True, frozen=True)
class ToolConfig:
    """Registration metadata. ``input_schema`` is a pydantic model class or a JSON schema."""

    description: str
    input_schema: SchemaNode = None
    title: str | None = None
    output_schema: Mapping[str, Any] | None = None
    annotations: Mapping[str, Any] | None = None

    def json_schema(self) -> Mapping[str, Any]:
        if isinstance(self.input_schema, type) and issubclass(self.input_schema, BaseModel):
            return input_json_schema(self.input_schema)
        if self.input_schema is None:
            return input_json_schema(None)
        return dict(self.input_schema)

    @property
    def input_model(self) -> type[BaseModel] | None:
        if isinstance(self.input_schema, type) and issubclass(self.input_schema, BaseModel):
            return self.input_schema
        return None


@dataclass(slots=True, frozen=True)
class ToolRegistration:
    name: str
    config: ToolConfig
    callback: ToolCallback


async def _resolve(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result


def _has(server: Any, attribute: str) -> bool:
    return callable(getattr(server, attribute, None))


def _detect_kind(server: Any) -> RegistrarKind:
    if _has(server, "register_tools"):
        return RegistrarKind.BULK
    if _has(server, "register_tool"):
        return RegistrarKind.SINGLE
    if _has(server, "tool"):
        return RegistrarKind.LEGACY
    raise TypeError(f"{type(server).__name__} exposes no tool registration method.")


def _registered_names(result: Any, registrations: Sequence[ToolRegistration]) -> list[str]:
    if result is None:
        return [registration.name for registration in registrations]
    names: list[str] = []
    for item in result:
        name = item if isinstance(item, str) else getattr(item, "name", None)
        if name:
            names.append(name)
    return names


_HANDLES: "weakref.WeakKeyDictionary[Any, ServerHandle]" = weakref.WeakKeyDictionary()
# Unhashable servers, keyed by id and dropped by a finalizer when the server dies.
_PINNED_HANDLES: dict[int, "ServerHandle"] = {}


class ServerHandle:
    """
    A server together with its detected registration tier and its tracker.

    Use ``ServerHandle.for_server`` so that every activation against the same
    server shares one tracker. The handle only holds a weak reference to the
    server, so caching it never keeps a server alive.
    """

    def __init__(self, server: Any) -> None:
        try:
            self._server_ref: Callable[[], Any] = weakref.ref(server)
        except TypeError:
            self._server_ref = lambda: server
        self.kind = _detect_kind(server)
        self.supports_removal = _has(server, "remove_tool")
        self.tracker = RegistrationTracker()
        LOGGER.debug(
            "Server %s uses %s registration (removal supported: %s)",
            type(server).__name__,
            self.kind.value,
            self.supports_removal,
        )

    @property
    def server(self) -> Any:
        server = self._server_ref()
        if server is None:
            raise ReferenceError("The server behind this handle has been garbage collected.")
        return server

    @classmethod
    def for_server(cls, server: Any) -> "ServerHandle":
        if isinstance(server, ServerHandle):
            return server
        try:
            handle = _HANDLES.get(server)
        except TypeError:
            return cls._pinned_handle(server)
        if handle is None:
            handle = _HANDLES[server] = cls(server)
        return handle

    @classmethod
    def _pinned_handle(cls, server: Any) -> "ServerHandle":
        key = id(server)
        handle = _PINNED_HANDLES.get(key)
        if handle is not None:
            return handle
        handle = _PINNED_HANDLES[key] = cls(server)
        try:
            weakref.finalize(server, _PINNED_HANDLES.pop, key, None)
        except TypeError:
            LOGGER.debug("Server %s cannot be weakly referenced; its handle lives until exit.", type(server).__name__)
        return handle

    async def register_bulk(self, registrations: Sequence[ToolRegistration]) -> list[str]:
        result = await _resolve(self.server.register_tools(list(registrations)))
        return _registered_names(result, registrations)

    async def register_one(self, registration: ToolRegistration) -> None:
        if _has(self.server, "register_tool"):
            await _resolve(self.server.register_tool(registration.name, registration.config, registration.callback))
        elif _has(self.server, "tool"):
            config = registration.config
            await _resolve(self.server.tool(registration.name, config.description, config.input_schema, registration.callback))
        else:
            raise TypeError(f"{type(self.server).__name__} has no per-tool registration method.")

    def remover(self) -> Callable[[str], Any] | None:
        return self.server.remove_tool if self.supports_removal else None

    async def notify_tools_changed(self) -> None:
        if _has(self.server, "send_tool_list_changed"):
            await _resolve(self.server.send_tool_list_changed())
        elif _has(self.server, "notify_tools_changed"):
            await _resolve(self.server.notify_tools_changed())
        else:
            LOGGER.debug("Server %s cannot send tool list notifications.", type(self.server).__name__)


class McpHost:
    """Live tool table served through the ``mcp`` low-level ``Server``."""

    def __init__(self, name: str = "xcodebuild-mcp", *, instructions: str | None = None) -> None:
        self.server = Server(name, version=__version__, instructions=instructions)
        self._tools: dict[str, ToolRegistration] = {}
        self.server.list_tools()(self._handle_list_tools)
        self.server.call_tool()(self._handle_call_tool)

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def get_tool(self, name: str) -> ToolRegistration | None:
        return self._tools.get(name)

    def register_tool(self, name: str, config: ToolConfig, callback: ToolCallback) -> str:
        if name in self._tools:
            raise ValueError(f"Tool '{name}' is already registered.")
        self._tools[name] = ToolRegistration(name=name, config=config, callback=callback)
        LOGGER.debug("Registered tool %s", name)
        return name

    async def register_tools(self, registrations: Iterable[ToolRegistration]) -> list[str]:
        """Register every entry that is not already present, then notify clients once."""

        added: list[str] = []
        for registration in registrations:
            if registration.name in self._tools:
                LOGGER.warning("Tool '%s' is already registered; skipping.", registration.name)
                continue
            self._tools[registration.name] = registration
            added.append(registration.name)
        if added:
            await self.notify_tools_changed()
        return added

    def remove_tool(self, name: str) -> bool:
        removed = self._tools.pop(name, None) is not None
        if removed:
            LOGGER.debug("Removed tool %s", name)
        return removed

    async def notify_tools_changed(self) -> None:
        try:
            context = self.server.request_context
        except LookupError:
            LOGGER.debug("No active client session; tool list change is not broadcast.")
            return
        await context.session.send_tool_list_changed()

    def create_initialization_options(self) -> Any:
        return self.server.create_initialization_options(
            notification_options=NotificationOptions(tools_changed=True),
        )

    async def call_tool(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolResponse:
        registration = self._tools.get(name)
        if registration is None:
            raise UnknownToolError(f"Unknown tool '{name}'")
        params = dict(arguments or {})
        model = registration.config.input_model
        if model is not None:
            try:
                model.model_validate(params)
            except ValidationError as exc:
                return create_error_response(f"Invalid parameters for '{name}'", str(exc))
        return await registration.callback(params)

    def list_tools(self) -> list[types.Tool]:
        tools: list[types.Tool] = []
        for registration in self._tools.values():
            config = registration.config
            annotations = types.ToolAnnotations(**dict(config.annotations)) if config.annotations else None
            tools.append(
                types.Tool(
                    name=registration.name,
                    title=config.title,
                    description=config.description,
                    inputSchema=dict(config.json_schema()),
                    outputSchema=dict(config.output_schema) if config.output_schema else None,
                    annotations=annotations,
                )
            )
        return tools

    async def _handle_list_tools(self) -> list[types.Tool]:
        return self.list_tools()

    async def _handle_call_tool(self, name: str, arguments: dict[str, Any]) -> list[types.TextContent]:
        response = await self.call_tool(name, arguments)
        if response.is_error:
            raise ToolCallFailedError(response.text)
        return [types.TextContent(type="text", text=item.text) for item in response.content]
