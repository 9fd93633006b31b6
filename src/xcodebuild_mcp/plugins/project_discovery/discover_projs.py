"""Scan a workspace for ``.xcodeproj`` and ``.xcworkspace`` bundles."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Mapping

from ...core.plugin_types import ToolDefinition
from ...tooling.executors import CommandExecutor
from ...tooling.responses import TextContent, ToolResponse, create_error_response
from ...tooling.tool_schemas import DiscoverProjectsInput
from ..common import InvalidParamsError, parse_params

LOGGER = logging.getLogger(__name__)

SKIPPED_DIRS = frozenset({"build", "DerivedData", "Pods", ".git", "node_modules"})


def _scan(directory: Path, workspace_root: Path, depth: int, max_depth: int, found: dict[str, list[str]]) -> None:
    if depth >= max_depth:
        LOGGER.debug("Max depth %s reached at %s", max_depth, directory)
        return
    try:
        entries = sorted(directory.iterdir())
    except PermissionError:
        LOGGER.debug("Permission denied scanning %s", directory)
        return
    except OSError as exc:
        LOGGER.warning("Error scanning directory %s: %s", directory, exc)
        return

    for entry in entries:
        if entry.is_symlink() or not entry.is_dir():
            continue
        if entry.name in SKIPPED_DIRS:
            continue
        if not entry.resolve().is_relative_to(workspace_root):
            LOGGER.warning("Skipping entry outside workspace root: %s", entry)
            continue
        if entry.suffix == ".xcodeproj":
            found["projects"].append(str(entry))
        elif entry.suffix == ".xcworkspace":
            found["workspaces"].append(str(entry))
        else:
            _scan(entry, workspace_root, depth + 1, max_depth, found)


def find_projects(workspace_root: Path, scan_path: Path, max_depth: int) -> dict[str, list[str]]:
    found: dict[str, list[str]] = {"projects": [], "workspaces": []}
    _scan(scan_path, workspace_root, 0, max_depth, found)
    found["projects"].sort()
    found["workspaces"].sort()
    return found


async def discover_projs_logic(params: Mapping[str, Any], executor: CommandExecutor) -> ToolResponse:
    try:
        parsed = parse_params(DiscoverProjectsInput, params, "discover_projs")
    except InvalidParamsError as exc:
        return exc.to_response()

    workspace_root = Path(parsed.workspace_root).expanduser().resolve()
    scan_path = (workspace_root / (parsed.scan_path or ".")).resolve()
    if not scan_path.is_relative_to(workspace_root):
        LOGGER.warning("Scan path %s resolves outside %s; scanning the workspace root", parsed.scan_path, workspace_root)
        scan_path = workspace_root
    if not scan_path.is_dir():
        return create_error_response(f"Scan path is not a directory: {scan_path}")

    LOGGER.info("Discovering projects in %s (max depth %s)", scan_path, parsed.max_depth)
    found = await asyncio.to_thread(find_projects, workspace_root, scan_path, parsed.max_depth)

    content = [
        TextContent(
            text=f"Discovery finished. Found {len(found['projects'])} projects and {len(found['workspaces'])} workspaces."
        )
    ]
    if found["projects"]:
        content.append(TextContent(text="Projects found:\n - " + "\n - ".join(found["projects"])))
    if found["workspaces"]:
        content.append(TextContent(text="Workspaces found:\n - " + "\n - ".join(found["workspaces"])))
    return ToolResponse(content=content)


tool = ToolDefinition(
    name="discover_projs",
    description=(
        "Scans a directory (defaults to workspace root) to find Xcode project (.xcodeproj) "
        "and workspace (.xcworkspace) files."
    ),
    schema=DiscoverProjectsInput,
    handler=discover_projs_logic,
    annotations={"readOnlyHint": True},
)
