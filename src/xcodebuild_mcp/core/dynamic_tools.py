"""
Runtime activation of workflows on a live server.

``enable_workflows`` loads the requested workflows from the catalog, registers
their tools through whichever registration primitive the server offers and
keeps the server's ``RegistrationTracker`` in sync. Problems with a single
workflow or tool are logged and skipped so one bad plugin cannot take the rest
of the activation down with it.
"""

from __future__ import annotations

import logging
from typing import Any, Coroutine, Iterable, Mapping, Sequence

from .adapter import wrap_handler_with_executor
from .catalog import (
    ToolCatalog,
    generate_workflow_descriptions,
    get_available_workflows,
    get_default_catalog,
    iter_tool_entries,
)
from .host import RegistrarKind, ServerHandle, ToolConfig, ToolRegistration

LOGGER = logging.getLogger(__name__)

__all__ = [
    "clear_enabled_workflows",
    "enable_workflows",
    "generate_workflow_descriptions",
    "get_available_workflows",
    "get_enabled_workflows",
]

PendingRegistration = tuple[str, ToolRegistration]


def _entry_field(entry: Any, key: str) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(key)
    return getattr(entry, key, None)


def _build_registration(entry: Any) -> ToolRegistration | None:
    name = _entry_field(entry, "name")
    handler = _entry_field(entry, "handler")
    if not isinstance(name, str) or not name or not callable(handler):
        return None
    config = ToolConfig(
        description=_entry_field(entry, "description") or "",
        input_schema=_entry_field(entry, "schema"),
        annotations=_entry_field(entry, "annotations"),
    )
    return ToolRegistration(name=name, config=config, callback=wrap_handler_with_executor(handler))


async def _collect(
    handle: ServerHandle,
    catalog: ToolCatalog,
    workflow_names: Sequence[str],
) -> tuple[list[str], list[PendingRegistration]]:
    loaded: list[str] = []
    pending: list[PendingRegistration] = []
    queued: set[str] = set()

    for workflow_name in workflow_names:
        loader = catalog.loaders.get(workflow_name)
        if loader is None:
            LOGGER.warning("Workflow '%s' not found in available workflows", workflow_name)
            continue
        try:
            bundle = await loader()
        except Exception as exc:
            LOGGER.error("Failed to load workflow '%s': %s", workflow_name, exc)
            continue
        loaded.append(workflow_name)
        handle.tracker.mark_workflow_enabled(workflow_name)

        for key, entry in iter_tool_entries(bundle):
            registration = _build_registration(entry)
            if registration is None:
                LOGGER.warning("Invalid tool definition for '%s' in workflow '%s'", key, workflow_name)
                continue
            if handle.tracker.is_tool_registered(registration.name) or registration.name in queued:
                LOGGER.debug("Tool '%s' already registered; skipping", registration.name)
                continue
            queued.add(registration.name)
            pending.append((workflow_name, registration))

    return loaded, pending


async def _register_individually(handle: ServerHandle, pending: Iterable[PendingRegistration]) -> int:
    count = 0
    for workflow_name, registration in pending:
        try:
            await handle.register_one(registration)
        except Exception as exc:
            LOGGER.error("Failed to register tool '%s' from workflow '%s': %s", registration.name, workflow_name, exc)
            continue
        handle.tracker.record_registration(registration.name, workflow_name)
        count += 1
    return count


async def _register_in_bulk(handle: ServerHandle, pending: Sequence[PendingRegistration]) -> int:
    owners = {registration.name: workflow_name for workflow_name, registration in pending}
    names = await handle.register_bulk([registration for _, registration in pending])
    count = 0
    for name in names:
        workflow_name = owners.get(name)
        if workflow_name is None:
            LOGGER.debug("Host reported unexpected tool '%s'; not tracked", name)
            continue
        handle.tracker.record_registration(name, workflow_name)
        count += 1
    return count


async def _enable_workflows(
    handle: ServerHandle,
    workflow_names: Sequence[str],
    additive: bool,
    catalog: ToolCatalog,
) -> None:
    tracker = handle.tracker
    if not additive and tracker.get_enabled_workflows():
        LOGGER.info("Replacing enabled workflows %s", ", ".join(tracker.get_enabled_workflows()))
        await tracker.clear_enabled_workflows(handle.remover())

    loaded, pending = await _collect(handle, catalog, workflow_names)

    notified = False
    registered = 0
    if pending and handle.kind is RegistrarKind.BULK:
        try:
            registered = await _register_in_bulk(handle, pending)
            notified = True
        except Exception as exc:
            LOGGER.warning("Bulk tool registration failed, registering tools one by one: %s", exc)
            registered = await _register_individually(handle, pending)
    elif pending:
        registered = await _register_individually(handle, pending)

    if not notified:
        try:
            await handle.notify_tools_changed()
        except Exception as exc:
            LOGGER.warning("Failed to send tool list changed notification: %s", exc)

    LOGGER.info("Enabled %s tools from workflows: %s", registered, ", ".join(loaded) or "none")


def enable_workflows(
    server: Any,
    workflow_names: Iterable[str],
    additive: bool = False,
    *,
    catalog: ToolCatalog | None = None,
) -> Coroutine[Any, Any, None]:
    """
    Activate ``workflow_names`` on ``server``.

    In replace mode (``additive=False``) previously enabled workflows are cleared
    first, removing their tools when the server supports removal. A missing
    server raises ``ValueError`` immediately, before any coroutine exists.
    """

    if server is None:
        raise ValueError("Server instance not available for dynamic tool registration")
    handle = ServerHandle.for_server(server)
    return _enable_workflows(handle, list(workflow_names), additive, catalog or get_default_catalog())


def get_enabled_workflows(server: Any) -> list[str]:
    return ServerHandle.for_server(server).tracker.get_enabled_workflows()


async def clear_enabled_workflows(server: Any) -> None:
    """Remove every tracked tool (where supported) and forget all enabled workflows."""

    handle = ServerHandle.for_server(server)
    await handle.tracker.clear_enabled_workflows(handle.remover())
