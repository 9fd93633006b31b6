"""
Pydantic schemas that describe the parameters of the bundled tools.

The same models serve as the MCP ``inputSchema`` (via ``model_json_schema``),
as argument validation in the host, and as the parser each tool handler runs
on its raw parameters.
"""

from __future__ import annotations

from typing import Any, Mapping, MutableMapping

from pydantic import BaseModel, ConfigDict, Field, model_validator

__all__ = [
    "BootSimulatorInput",
    "BuildSimulatorInput",
    "CleanInput",
    "DiscoverProjectsInput",
    "LaunchAppSimulatorInput",
    "ListSchemesInput",
    "ListSimulatorsInput",
    "ManageWorkflowsInput",
    "ProjectTargetInput",
    "ShowBuildSettingsInput",
    "SwipeInput",
    "TapInput",
    "input_json_schema",
]

DEFAULT_MAX_DEPTH = 5

_UUID_PATTERN = r"^[0-9A-Fa-f]{8}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{4}-[0-9A-Fa-f]{12}$"


class _ToolInput(BaseModel):
    model_config = ConfigDict(extra="forbid")


class DiscoverProjectsInput(_ToolInput):
    workspace_root: str = Field(..., description="The absolute path of the workspace root to scan within.")
    scan_path: str | None = Field(
        default=None,
        description="Path relative to the workspace root to scan. Defaults to the workspace root.",
    )
    max_depth: int = Field(
        default=DEFAULT_MAX_DEPTH,
        ge=0,
        description=f"Maximum directory depth to scan. Defaults to {DEFAULT_MAX_DEPTH}.",
    )


class ProjectTargetInput(_ToolInput):
    project_path: str | None = Field(default=None, description="Path to the .xcodeproj file.")
    workspace_path: str | None = Field(default=None, description="Path to the .xcworkspace file.")

    @model_validator(mode="after")
    def _exactly_one_target(self) -> "ProjectTargetInput":
        if bool(self.project_path) == bool(self.workspace_path):
            raise ValueError("Provide exactly one of project_path or workspace_path.")
        return self

    def target_args(self) -> list[str]:
        if self.workspace_path:
            return ["-workspace", self.workspace_path]
        return ["-project", str(self.project_path)]


class ListSchemesInput(ProjectTargetInput):
    pass


class ShowBuildSettingsInput(ProjectTargetInput):
    scheme: str = Field(..., description="Scheme whose build settings are shown.")


class CleanInput(ProjectTargetInput):
    scheme: str | None = Field(default=None, description="Optional scheme to clean.")
    configuration: str = Field(default="Debug", description="Build configuration (Debug or Release).")


class BuildSimulatorInput(ProjectTargetInput):
    scheme: str = Field(..., description="The scheme to build.")
    simulator_id: str | None = Field(default=None, description="UUID of the target simulator.")
    simulator_name: str | None = Field(default=None, description="Name of the target simulator, e.g. 'iPhone 16'.")
    configuration: str = Field(default="Debug", description="Build configuration (Debug or Release).")
    use_latest_os: bool = Field(default=True, description="Use the latest OS version when building by name.")
    extra_args: list[str] | None = Field(default=None, description="Additional xcodebuild arguments.")

    @model_validator(mode="after")
    def _exactly_one_simulator(self) -> "BuildSimulatorInput":
        if bool(self.simulator_id) == bool(self.simulator_name):
            raise ValueError("Provide exactly one of simulator_id or simulator_name.")
        return self


class ListSimulatorsInput(_ToolInput):
    include_unavailable: bool = Field(default=False, description="Also list simulators whose runtime is missing.")


class BootSimulatorInput(_ToolInput):
    simulator_uuid: str = Field(..., pattern=_UUID_PATTERN, description="UUID of the simulator to boot.")


class LaunchAppSimulatorInput(_ToolInput):
    simulator_uuid: str = Field(..., pattern=_UUID_PATTERN, description="UUID of the simulator to use.")
    bundle_id: str = Field(..., min_length=1, description="Bundle identifier of the app to launch.")
    args: list[str] | None = Field(default=None, description="Additional arguments passed to the app.")


class TapInput(_ToolInput):
    simulator_uuid: str = Field(..., pattern=_UUID_PATTERN)
    x: int = Field(..., description="X coordinate of the tap.")
    y: int = Field(..., description="Y coordinate of the tap.")
    pre_delay: float | None = Field(default=None, ge=0, description="Delay before the tap in seconds.")
    post_delay: float | None = Field(default=None, ge=0, description="Delay after the tap in seconds.")


class SwipeInput(_ToolInput):
    simulator_uuid: str = Field(..., pattern=_UUID_PATTERN)
    x1: int = Field(..., description="Start X coordinate.")
    y1: int = Field(..., description="Start Y coordinate.")
    x2: int = Field(..., description="End X coordinate.")
    y2: int = Field(..., description="End Y coordinate.")
    duration: float | None = Field(default=None, ge=0, description="Swipe duration in seconds.")
    delta: float | None = Field(default=None, ge=0, description="Distance between touch points.")
    pre_delay: float | None = Field(default=None, ge=0)
    post_delay: float | None = Field(default=None, ge=0)


class ManageWorkflowsInput(_ToolInput):
    workflow_names: list[str] = Field(..., min_length=1, description="Workflow identifiers to enable.")
    additive: bool = Field(
        default=True,
        description="Keep the currently enabled workflows. When false the new set replaces them.",
    )


def input_json_schema(model: type[BaseModel] | None) -> Mapping[str, Any]:
    """Return the JSON schema advertised for ``model`` (an empty object schema for ``None``)."""

    if model is None:
        return {"type": "object", "properties": {}}
    schema: MutableMapping[str, Any] = dict(model.model_json_schema())
    schema.pop("title", None)
    return schema
