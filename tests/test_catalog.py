from __future__ import annotations

import pytest

from xcodebuild_mcp.core.catalog import (
    WORKFLOW_KEY,
    WORKFLOW_METADATA,
    build_catalog,
    generate_workflow_descriptions,
    get_available_workflows,
    iter_tool_entries,
    load_tool_definition,
)
from xcodebuild_mcp.core.manifest import ManifestValidationError, load_manifest, parse_tool_entry
from xcodebuild_mcp.core.plugin_types import ToolDefinition, WorkflowMeta
from xcodebuild_mcp.tooling.config import PACKAGE_MANIFESTS_DIR, RuntimeConfig
from xcodebuild_mcp.visibility.predicates import PredicateContext


def test_default_catalog_lists_packaged_workflows() -> None:
    assert get_available_workflows() == [
        "project-discovery",
        "simulator",
        "ui-testing",
        "utilities",
        "workflow-discovery",
    ]
    assert WORKFLOW_METADATA["simulator"].name == "iOS Simulator Development"


def test_workflow_descriptions_use_upper_case_workflow_ids() -> None:
    lines = generate_workflow_descriptions().splitlines()

    assert len(lines) == 5
    for workflow_id, line in zip(get_available_workflows(), lines):
        assert line.startswith(f"- **{workflow_id.upper()}**: ")
    assert "IOS SIMULATOR DEVELOPMENT" not in "\n".join(lines)
    assert lines[0] == (
        "- **PROJECT-DISCOVERY**: Discover and examine Xcode projects, workspaces, schemes and build settings."
    )


@pytest.mark.asyncio
async def test_loader_returns_metadata_and_tools() -> None:
    catalog = build_catalog(load_manifest(PACKAGE_MANIFESTS_DIR))

    bundle = await catalog.loaders["simulator"]()

    assert isinstance(bundle[WORKFLOW_KEY], WorkflowMeta)
    entries = dict(iter_tool_entries(bundle))
    assert list(entries) == ["discover_projs", "list_sims", "boot_sim", "build_sim", "launch_app_sim"]
    assert all(isinstance(entry, ToolDefinition) for entry in entries.values())
    assert entries["build_sim"].description.startswith("Builds an app from a project or workspace")


@pytest.mark.asyncio
async def test_loader_filters_tools_for_runtime_context() -> None:
    manifest = load_manifest(PACKAGE_MANIFESTS_DIR)
    hidden = build_catalog(manifest, PredicateContext.from_config(RuntimeConfig()))
    shown = build_catalog(manifest, PredicateContext.from_config(RuntimeConfig(experimental_workflow_discovery=True)))

    assert dict(iter_tool_entries(await hidden.loaders["workflow-discovery"]())) == {}
    assert list(dict(iter_tool_entries(await shown.loaders["workflow-discovery"]()))) == ["manage_workflows"]


def test_load_tool_definition_applies_manifest_name() -> None:
    entry = parse_tool_entry(
        {"id": "clean", "module": "plugins/utilities/clean", "names": {"mcp": "clean_build_products"}}
    )

    definition = load_tool_definition(entry)

    assert definition.name == "clean_build_products"
    assert callable(definition.handler)


def test_load_tool_definition_requires_tool_attribute() -> None:
    entry = parse_tool_entry({"id": "common", "module": "plugins/common", "names": {"mcp": "common"}})

    with pytest.raises(ManifestValidationError, match="ToolDefinition"):
        load_tool_definition(entry)
