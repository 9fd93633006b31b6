from __future__ import annotations

import gc
import weakref
from typing import Any, Mapping

import pytest

from xcodebuild_mcp.core.host import (
    _PINNED_HANDLES,
    McpHost,
    RegistrarKind,
    ServerHandle,
    ToolCallFailedError,
    ToolConfig,
    ToolRegistration,
    UnknownToolError,
)
from xcodebuild_mcp.tooling.responses import ToolResponse, create_error_response, create_text_response
from xcodebuild_mcp.tooling.tool_schemas import TapInput

SIMULATOR_UUID = "A1B2C3D4-E5F6-4A5B-8C7D-9E0F1A2B3C4D"


async def _ok(params: Mapping[str, Any]) -> ToolResponse:
    return create_text_response(f"ok {sorted(params)}")


async def _fails(params: Mapping[str, Any]) -> ToolResponse:
    return create_error_response("Tool broke", "stack trace")


def _registration(name: str, callback=_ok, **config: Any) -> ToolRegistration:
    return ToolRegistration(name=name, config=ToolConfig(description=f"{name} tool", **config), callback=callback)


def test_handle_detects_registration_tier() -> None:
    class Bulk:
        def register_tools(self, registrations): ...
        def register_tool(self, name, config, callback): ...

    class Single:
        def register_tool(self, name, config, callback): ...
        def remove_tool(self, name): ...

    class Legacy:
        def tool(self, name, description, schema, callback): ...

    assert ServerHandle(Bulk()).kind is RegistrarKind.BULK
    assert ServerHandle(Single()).kind is RegistrarKind.SINGLE
    assert ServerHandle(Single()).supports_removal is True
    assert ServerHandle(Legacy()).kind is RegistrarKind.LEGACY
    assert ServerHandle(Legacy()).supports_removal is False
    assert ServerHandle(Legacy()).remover() is None
    with pytest.raises(TypeError):
        ServerHandle(object())


def test_for_server_reuses_one_handle_per_server() -> None:
    host = McpHost()
    other = McpHost()

    handle = ServerHandle.for_server(host)

    assert ServerHandle.for_server(host) is handle
    assert ServerHandle.for_server(handle) is handle
    assert ServerHandle.for_server(other) is not handle
    assert handle.kind is RegistrarKind.BULK
    assert handle.supports_removal is True



class _Registrar:
    def register_tool(self, name, config, callback): ...


class _UnhashableRegistrar(_Registrar):
    def __eq__(self, other: object) -> bool:
        return self is other


def test_cached_handle_does_not_keep_server_alive() -> None:
    server = _Registrar()
    handle = ServerHandle.for_server(server)
    ref = weakref.ref(server)

    del server
    gc.collect()

    assert ref() is None
    with pytest.raises(ReferenceError):
        handle.server


def test_unhashable_server_handle_is_dropped_with_its_server() -> None:
    server = _UnhashableRegistrar()
    pinned_before = len(_PINNED_HANDLES)

    handle = ServerHandle.for_server(server)

    assert ServerHandle.for_server(server) is handle
    assert handle.server is server
    assert len(_PINNED_HANDLES) == pinned_before + 1

    ref = weakref.ref(server)
    del server
    gc.collect()

    assert ref() is None
    assert len(_PINNED_HANDLES) == pinned_before


@pytest.mark.asyncio
async def test_register_and_list_tools() -> None:
    host = McpHost()
    host.register_tool("tap", ToolConfig(description="Tap", input_schema=TapInput, annotations={"destructiveHint": True}), _ok)

    tools = host.list_tools()

    assert host.tool_names == ["tap"]
    assert tools[0].name == "tap"
    assert "simulator_uuid" in tools[0].inputSchema["properties"]
    assert tools[0].annotations is not None and tools[0].annotations.destructiveHint is True


def test_register_tool_rejects_duplicates() -> None:
    host = McpHost()
    host.register_tool("clean", ToolConfig(description="Clean"), _ok)

    with pytest.raises(ValueError, match="already registered"):
        host.register_tool("clean", ToolConfig(description="Clean"), _ok)


def test_tool_without_schema_advertises_empty_object() -> None:
    host = McpHost()
    host.register_tool("list_sims", ToolConfig(description="List"), _ok)

    assert host.list_tools()[0].inputSchema == {"type": "object", "properties": {}}


@pytest.mark.asyncio
async def test_bulk_registration_skips_existing_tools() -> None:
    host = McpHost()
    host.register_tool("clean", ToolConfig(description="Clean"), _ok)

    added = await host.register_tools([_registration("clean"), _registration("build_sim")])

    assert added == ["build_sim"]
    assert host.tool_names == ["clean", "build_sim"]


@pytest.mark.asyncio
async def test_notify_without_session_is_a_no_op() -> None:
    await McpHost().notify_tools_changed()


def test_remove_tool() -> None:
    host = McpHost()
    host.register_tool("clean", ToolConfig(description="Clean"), _ok)

    assert host.remove_tool("clean") is True
    assert host.remove_tool("clean") is False
    assert host.get_tool("clean") is None


@pytest.mark.asyncio
async def test_call_tool_validates_arguments() -> None:
    host = McpHost()
    host.register_tool("tap", ToolConfig(description="Tap", input_schema=TapInput), _ok)

    invalid = await host.call_tool("tap", {"simulator_uuid": "nope", "x": 1, "y": 2})
    valid = await host.call_tool("tap", {"simulator_uuid": SIMULATOR_UUID, "x": 1, "y": 2})

    assert invalid.is_error
    assert invalid.text.startswith("Error: Invalid parameters for 'tap'")
    assert not valid.is_error
    assert valid.text == "ok ['simulator_uuid', 'x', 'y']"


@pytest.mark.asyncio
async def test_call_unknown_tool_raises() -> None:
    with pytest.raises(UnknownToolError):
        await McpHost().call_tool("missing", {})


@pytest.mark.asyncio
async def test_protocol_handler_converts_content_and_errors() -> None:
    host = McpHost()
    host.register_tool("clean", ToolConfig(description="Clean"), _ok)
    host.register_tool("broken", ToolConfig(description="Broken"), _fails)

    content = await host._handle_call_tool("clean", {})

    assert [item.text for item in content] == ["ok []"]
    with pytest.raises(ToolCallFailedError, match="Tool broke"):
        await host._handle_call_tool("broken", {})


def test_initialization_options_advertise_tool_list_changes() -> None:
    options = McpHost().create_initialization_options()

    assert options.capabilities.tools is not None
    assert options.capabilities.tools.listChanged is True
