"""
Server bootstrap.

Builds the ``McpHost``, enables the workflows selected for the MCP runtime and
serves the host over stdio. The running server is remembered as the *active*
server so that ``manage_workflows`` can change its workflows while it runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import anyio
from mcp.server.stdio import stdio_server

from .core.catalog import ToolCatalog, build_catalog
from .core.dynamic_tools import enable_workflows, generate_workflow_descriptions
from .core.host import McpHost
from .core.manifest import ResolvedManifest, load_manifest
from .tooling.config import RuntimeConfig, load_runtime_config
from .visibility.exposure import select_workflows_for_mcp
from .visibility.predicates import PredicateContext

LOGGER = logging.getLogger(__name__)

__all__ = [
    "ActiveServer",
    "bootstrap_server",
    "create_server",
    "get_active_server",
    "run_stdio",
    "serve_stdio",
    "set_active_server",
]

INSTRUCTIONS = (
    "XcodeBuildMCP exposes Xcode, simulator and UI automation operations as tools. "
    "Tools are grouped into workflows:\n"
)


@dataclass(slots=True)
class ActiveServer:
    host: McpHost
    catalog: ToolCatalog
    config: RuntimeConfig


_ACTIVE_SERVER: ActiveServer | None = None


def get_active_server() -> ActiveServer | None:
    return _ACTIVE_SERVER


def set_active_server(active: ActiveServer | None) -> None:
    global _ACTIVE_SERVER
    _ACTIVE_SERVER = active


def create_server(config: RuntimeConfig | None = None, catalog: ToolCatalog | None = None) -> McpHost:
    resolved = config or load_runtime_config()
    LOGGER.debug("Creating MCP host (debug=%s)", resolved.debug)
    return McpHost(instructions=INSTRUCTIONS + generate_workflow_descriptions(catalog))


async def bootstrap_server(
    host: McpHost,
    config: RuntimeConfig | None = None,
    manifest: ResolvedManifest | None = None,
    catalog: ToolCatalog | None = None,
) -> list[str]:
    """
    Enable the workflows the MCP runtime starts with and return their ids.

    Auto-included workflows are always enabled; the configured
    ``enabled_workflows`` are enabled when set, the manifest defaults otherwise.
    The host becomes the active server.
    """

    resolved_config = config or load_runtime_config()
    resolved_manifest = manifest or load_manifest(resolved_config.manifests_dir)
    ctx = PredicateContext.from_config(resolved_config, runtime="mcp")
    resolved_catalog = catalog or build_catalog(resolved_manifest, ctx)

    unknown = [name for name in resolved_config.enabled_workflows if name not in resolved_manifest.workflows]
    if unknown:
        LOGGER.warning("Ignoring unknown workflows in configuration: %s", ", ".join(unknown))

    selected = select_workflows_for_mcp(
        list(resolved_manifest.workflows.values()),
        resolved_config.enabled_workflows,
        ctx,
    )
    workflow_ids = [workflow.id for workflow in selected]
    LOGGER.info("Starting with workflows: %s", ", ".join(workflow_ids) or "none")

    set_active_server(ActiveServer(host=host, catalog=resolved_catalog, config=resolved_config))
    await enable_workflows(host, workflow_ids, additive=True, catalog=resolved_catalog)
    return workflow_ids


async def serve_stdio(config: RuntimeConfig | None = None) -> None:
    resolved_config = config or load_runtime_config()
    manifest = load_manifest(resolved_config.manifests_dir)
    catalog = build_catalog(manifest, PredicateContext.from_config(resolved_config, runtime="mcp"))
    host = create_server(resolved_config, catalog)
    await bootstrap_server(host, resolved_config, manifest, catalog)

    async with stdio_server() as (read_stream, write_stream):
        LOGGER.info("Serving %s tools over stdio", len(host.tool_names))
        await host.server.run(read_stream, write_stream, host.create_initialization_options())


def run_stdio(config: RuntimeConfig | None = None) -> None:
    """Build, bootstrap and serve the MCP host over stdio until the client disconnects."""

    anyio.run(serve_stdio, config)
