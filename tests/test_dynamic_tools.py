from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

import pytest

from xcodebuild_mcp.core.catalog import ToolCatalog
from xcodebuild_mcp.core.dynamic_tools import (
    clear_enabled_workflows,
    enable_workflows,
    get_enabled_workflows,
)
from xcodebuild_mcp.core.host import RegistrarKind, ServerHandle
from xcodebuild_mcp.core.plugin_types import ToolDefinition, WorkflowMeta
from xcodebuild_mcp.tooling.executors import CommandExecutor, set_default_command_executor
from xcodebuild_mcp.tooling.responses import ToolResponse, create_text_response


async def _echo(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
    return create_text_response(f"echo {params.get('value')}")


def _tool(name: str) -> ToolDefinition:
    return ToolDefinition(name=name, description=f"{name} tool", schema=None, handler=_echo)


def _catalog(workflows: Mapping[str, Sequence[Any]], failing: Sequence[str] = ()) -> ToolCatalog:
    catalog = ToolCatalog()
    for workflow_id, entries in workflows.items():
        meta = WorkflowMeta(name=workflow_id, description=f"{workflow_id} workflow")

        def make_loader(workflow_id: str = workflow_id, entries: Sequence[Any] = entries, meta: WorkflowMeta = meta):
            async def loader() -> Mapping[str, Any]:
                if workflow_id in failing:
                    raise ImportError(f"cannot import {workflow_id}")
                bundle: dict[str, Any] = {"workflow": meta}
                for index, entry in enumerate(entries):
                    key = entry if isinstance(entry, str) else f"entry_{index}"
                    bundle[key] = _tool(entry) if isinstance(entry, str) else entry
                return bundle

            return loader

        catalog.loaders[workflow_id] = make_loader()
        catalog.metadata[workflow_id] = meta
    return catalog


class SingleHost:
    def __init__(self, failing: Sequence[str] = (), notify_error: Exception | None = None) -> None:
        self.tools: dict[str, Any] = {}
        self.failing = set(failing)
        self.notifications = 0
        self.notify_error = notify_error

    def register_tool(self, name: str, config: Any, callback: Any) -> None:
        if name in self.failing:
            raise RuntimeError(f"cannot register {name}")
        self.tools[name] = callback

    def remove_tool(self, name: str) -> None:
        self.tools.pop(name, None)

    def send_tool_list_changed(self) -> None:
        if self.notify_error is not None:
            raise self.notify_error
        self.notifications += 1


class LegacyHost:
    def __init__(self) -> None:
        self.tools: dict[str, Any] = {}
        self.notifications = 0

    def tool(self, name: str, description: str, schema: Any, callback: Any) -> None:
        self.tools[name] = callback

    async def notify_tools_changed(self) -> None:
        self.notifications += 1


class BulkHost(SingleHost):
    def __init__(self, fail_bulk: bool = False) -> None:
        super().__init__()
        self.fail_bulk = fail_bulk
        self.bulk_calls: list[list[str]] = []

    async def register_tools(self, registrations: Sequence[Any]) -> list[str]:
        self.bulk_calls.append([registration.name for registration in registrations])
        if self.fail_bulk:
            raise RuntimeError("bulk registration unavailable")
        for registration in registrations:
            self.tools[registration.name] = registration.callback
        return [registration.name for registration in registrations]


CATALOG = _catalog(
    {
        "simulator": ["discover_projs", "list_sims", "build_sim"],
        "project-discovery": ["discover_projs", "list_schemes"],
        "utilities": ["clean"],
        "empty": [],
    }
)


@pytest.mark.asyncio
async def test_enable_registers_tools_and_notifies_once() -> None:
    host = SingleHost()

    await enable_workflows(host, ["simulator"], catalog=CATALOG)

    assert list(host.tools) == ["discover_projs", "list_sims", "build_sim"]
    assert host.notifications == 1
    assert get_enabled_workflows(host) == ["simulator"]
    assert ServerHandle.for_server(host).tracker.get_enabled_tools()["build_sim"] == "simulator"


@pytest.mark.asyncio
async def test_enabling_twice_is_idempotent() -> None:
    host = SingleHost()

    await enable_workflows(host, ["simulator"], additive=True, catalog=CATALOG)
    await enable_workflows(host, ["simulator"], additive=True, catalog=CATALOG)

    assert len(host.tools) == 3
    assert host.notifications == 2
    assert get_enabled_workflows(host) == ["simulator"]


@pytest.mark.asyncio
async def test_shared_tool_is_registered_once_and_owned_by_first_workflow() -> None:
    host = SingleHost()

    await enable_workflows(host, ["simulator", "project-discovery"], catalog=CATALOG)

    tracker = ServerHandle.for_server(host).tracker
    assert list(host.tools) == ["discover_projs", "list_sims", "build_sim", "list_schemes"]
    assert tracker.get_enabled_tools()["discover_projs"] == "simulator"
    assert get_enabled_workflows(host) == ["simulator", "project-discovery"]


@pytest.mark.asyncio
async def test_additive_mode_keeps_previous_workflows() -> None:
    host = SingleHost()

    await enable_workflows(host, ["simulator"], catalog=CATALOG)
    await enable_workflows(host, ["utilities"], additive=True, catalog=CATALOG)

    assert "build_sim" in host.tools and "clean" in host.tools
    assert get_enabled_workflows(host) == ["simulator", "utilities"]


@pytest.mark.asyncio
async def test_replace_mode_removes_previous_tools_when_supported() -> None:
    host = SingleHost()

    await enable_workflows(host, ["simulator"], catalog=CATALOG)
    await enable_workflows(host, ["utilities"], additive=False, catalog=CATALOG)

    assert list(host.tools) == ["clean"]
    assert get_enabled_workflows(host) == ["utilities"]
    assert ServerHandle.for_server(host).tracker.get_enabled_tools() == {"clean": "utilities"}


@pytest.mark.asyncio
async def test_replace_mode_without_removal_resets_tracking_only() -> None:
    host = LegacyHost()

    await enable_workflows(host, ["utilities"], catalog=CATALOG)
    await enable_workflows(host, ["project-discovery"], catalog=CATALOG)

    assert ServerHandle.for_server(host).kind is RegistrarKind.LEGACY
    assert set(host.tools) == {"clean", "discover_projs", "list_schemes"}
    assert get_enabled_workflows(host) == ["project-discovery"]
    assert ServerHandle.for_server(host).tracker.get_enabled_tools() == {
        "discover_projs": "project-discovery",
        "list_schemes": "project-discovery",
    }
    assert host.notifications == 2


@pytest.mark.asyncio
async def test_replace_mode_can_re_register_the_same_workflow() -> None:
    host = SingleHost()

    await enable_workflows(host, ["simulator"], catalog=CATALOG)
    await enable_workflows(host, ["simulator"], catalog=CATALOG)

    assert list(host.tools) == ["discover_projs", "list_sims", "build_sim"]
    assert get_enabled_workflows(host) == ["simulator"]


@pytest.mark.asyncio
async def test_unknown_workflow_is_skipped(caplog: pytest.LogCaptureFixture) -> None:
    host = SingleHost()

    with caplog.at_level(logging.WARNING):
        await enable_workflows(host, ["nope", "utilities"], catalog=CATALOG)

    assert list(host.tools) == ["clean"]
    assert get_enabled_workflows(host) == ["utilities"]
    assert "nope" in caplog.text


@pytest.mark.asyncio
async def test_failing_loader_is_skipped() -> None:
    catalog = _catalog({"broken": ["ghost"], "utilities": ["clean"]}, failing=["broken"])
    host = SingleHost()

    await enable_workflows(host, ["broken", "utilities"], catalog=catalog)

    assert list(host.tools) == ["clean"]
    assert get_enabled_workflows(host) == ["utilities"]
    assert host.notifications == 1


@pytest.mark.asyncio
async def test_malformed_entries_are_skipped() -> None:
    catalog = _catalog(
        {
            "mixed": [
                {"description": "no name", "handler": _echo},
                {"name": "not_callable", "handler": "nope"},
                {"name": "", "handler": _echo},
                {"name": "from_mapping", "description": "dict entry", "handler": _echo},
                "clean",
            ]
        }
    )
    host = SingleHost()

    await enable_workflows(host, ["mixed"], catalog=catalog)

    assert list(host.tools) == ["from_mapping", "clean"]


@pytest.mark.asyncio
async def test_workflow_without_tools_is_still_enabled() -> None:
    host = SingleHost()

    await enable_workflows(host, ["empty"], catalog=CATALOG)

    assert host.tools == {}
    assert get_enabled_workflows(host) == ["empty"]
    assert host.notifications == 1


@pytest.mark.asyncio
async def test_failed_tool_registration_does_not_stop_the_rest() -> None:
    host = SingleHost(failing=["list_sims"])

    await enable_workflows(host, ["simulator"], catalog=CATALOG)

    assert list(host.tools) == ["discover_projs", "build_sim"]
    assert not ServerHandle.for_server(host).tracker.is_tool_registered("list_sims")
    assert get_enabled_workflows(host) == ["simulator"]


@pytest.mark.asyncio
async def test_bulk_registration_uses_one_call_and_no_manual_notification() -> None:
    host = BulkHost()

    await enable_workflows(host, ["simulator", "utilities", "project-discovery"], catalog=CATALOG)

    assert host.bulk_calls == [["discover_projs", "list_sims", "build_sim", "clean", "list_schemes"]]
    assert host.notifications == 0
    tools = ServerHandle.for_server(host).tracker.get_enabled_tools()
    assert tools["clean"] == "utilities"
    assert tools["list_schemes"] == "project-discovery"
    assert get_enabled_workflows(host) == ["simulator", "utilities", "project-discovery"]


@pytest.mark.asyncio
async def test_single_registration_notifies_once_for_several_workflows() -> None:
    host = SingleHost()

    await enable_workflows(host, ["simulator", "utilities", "project-discovery"], catalog=CATALOG)

    assert list(host.tools) == ["discover_projs", "list_sims", "build_sim", "clean", "list_schemes"]
    assert host.notifications == 1


class OwnerCheckingHost(SingleHost):
    """Records the tracker state seen at each registration."""

    def __init__(self) -> None:
        super().__init__()
        self.snapshots: list[tuple[str, list[str], dict[str, str]]] = []

    def register_tool(self, name: str, config: Any, callback: Any) -> None:
        tracker = ServerHandle.for_server(self).tracker
        self.snapshots.append((name, tracker.get_enabled_workflows(), tracker.get_enabled_tools()))
        super().register_tool(name, config, callback)


@pytest.mark.asyncio
async def test_workflow_is_enabled_before_its_tools_are_tracked() -> None:
    host = OwnerCheckingHost()

    await enable_workflows(host, ["simulator", "utilities", "project-discovery"], catalog=CATALOG)

    owners = {"discover_projs": "simulator", "list_sims": "simulator", "build_sim": "simulator"}
    owners.update(clean="utilities", list_schemes="project-discovery")
    assert [name for name, _, _ in host.snapshots] == list(owners)
    for name, workflows, tools in host.snapshots:
        assert owners[name] in workflows
        assert set(tools.values()) <= set(workflows)


@pytest.mark.asyncio
async def test_bulk_failure_falls_back_to_single_registration() -> None:
    host = BulkHost(fail_bulk=True)

    await enable_workflows(host, ["utilities"], catalog=CATALOG)

    assert host.bulk_calls == [["clean"]]
    assert list(host.tools) == ["clean"]
    assert host.notifications == 1
    assert ServerHandle.for_server(host).tracker.is_tool_registered("clean")


@pytest.mark.asyncio
async def test_bulk_host_with_nothing_new_still_notifies_once() -> None:
    host = BulkHost()

    await enable_workflows(host, ["utilities"], catalog=CATALOG)
    await enable_workflows(host, ["utilities"], additive=True, catalog=CATALOG)

    assert host.bulk_calls == [["clean"]]
    assert host.notifications == 1


@pytest.mark.asyncio
async def test_notification_failure_is_logged_and_keeps_tools(caplog: pytest.LogCaptureFixture) -> None:
    host = SingleHost(notify_error=RuntimeError("transport closed"))

    with caplog.at_level(logging.WARNING):
        await enable_workflows(host, ["utilities"], catalog=CATALOG)

    assert list(host.tools) == ["clean"]
    assert "transport closed" in caplog.text


def test_missing_server_raises_before_a_coroutine_exists() -> None:
    with pytest.raises(ValueError):
        enable_workflows(None, ["simulator"], catalog=CATALOG)


@pytest.mark.asyncio
async def test_registered_callback_resolves_executor_at_call_time() -> None:
    seen: list[CommandExecutor] = []

    async def handler(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
        seen.append(executor)
        return create_text_response("ok")

    catalog = _catalog({"custom": [ToolDefinition(name="custom_tool", description="", schema=None, handler=handler)]})
    host = SingleHost()
    await enable_workflows(host, ["custom"], catalog=catalog)

    replacement = CommandExecutor()
    set_default_command_executor(replacement)
    result = await host.tools["custom_tool"]({"value": 1})

    assert result.text == "ok"
    assert seen == [replacement]


@pytest.mark.asyncio
async def test_trackers_are_isolated_per_server() -> None:
    first = SingleHost()
    second = SingleHost()

    await enable_workflows(first, ["simulator"], catalog=CATALOG)
    await enable_workflows(second, ["utilities"], catalog=CATALOG)

    assert get_enabled_workflows(first) == ["simulator"]
    assert get_enabled_workflows(second) == ["utilities"]


@pytest.mark.asyncio
async def test_clear_enabled_workflows_removes_tracked_tools() -> None:
    host = SingleHost()
    await enable_workflows(host, ["simulator"], catalog=CATALOG)

    await clear_enabled_workflows(host)

    assert host.tools == {}
    assert get_enabled_workflows(host) == []
