"""
Declarative tool and workflow manifest.

Entries are validated with pydantic models and cross-checked by the loader so
the rest of the system can treat a ``ResolvedManifest`` as trustworthy.
"""

from .loader import (
    ManifestValidationError,
    get_tools_for_workflows,
    get_workflow_metadata_from_manifest,
    get_workflow_tools,
    load_manifest,
    module_import_path,
    validate_tool_modules,
)
from .schema import (
    ResolvedManifest,
    SchemaValidationError,
    ToolManifestEntry,
    WorkflowManifestEntry,
    derive_cli_name,
    get_effective_cli_name,
    parse_tool_entry,
    parse_workflow_entry,
)

__all__ = [
    "ManifestValidationError",
    "ResolvedManifest",
    "SchemaValidationError",
    "ToolManifestEntry",
    "WorkflowManifestEntry",
    "derive_cli_name",
    "get_effective_cli_name",
    "get_tools_for_workflows",
    "get_workflow_metadata_from_manifest",
    "get_workflow_tools",
    "load_manifest",
    "module_import_path",
    "parse_tool_entry",
    "parse_workflow_entry",
    "validate_tool_modules",
]
