"""
Runtime configuration loader.

Settings live under the ``tool.xcodebuild_mcp`` section inside ``pyproject.toml``
and can be overridden with ``XCODEBUILDMCP_*`` environment variables, which is
how MCP clients usually configure the server. Built-in defaults apply when
neither source sets a value.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable, Mapping

WORKSPACE_ROOT = Path(__file__).resolve().parents[3]
PYPROJECT_PATH = WORKSPACE_ROOT / "pyproject.toml"
PACKAGE_MANIFESTS_DIR = Path(__file__).resolve().parents[1] / "manifests"

ENV_PREFIX = "XCODEBUILDMCP_"

__all__ = [
    "PACKAGE_MANIFESTS_DIR",
    "RuntimeConfig",
    "build_runtime_config",
    "load_runtime_config",
]

_TRUTHY = {"1", "true", "yes", "on"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(slots=True, frozen=True)
class RuntimeConfig:
    """Resolved runtime settings shared by the server, the CLI and the tools."""

    debug: bool = False
    enabled_workflows: tuple[str, ...] = ()
    experimental_workflow_discovery: bool = False
    disable_xcode_auto_sync: bool = False
    running_under_xcode: bool = False
    manifests_dir: Path = PACKAGE_MANIFESTS_DIR
    log_level: str = "WARNING"

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level


def _project_data(path: Path = PYPROJECT_PATH) -> Mapping[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def _get_section(data: Mapping[str, Any]) -> Mapping[str, Any]:
    tool_section = data.get("tool") or {}
    return tool_section.get("xcodebuild_mcp") or {}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _normalise_workflows(value: Iterable[str] | str | None) -> tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = value.split(",")
    return tuple(item.strip() for item in value if item and item.strip())


def _normalise_log_level(value: Any) -> str:
    level = str(value).strip().upper()
    if level == "WARN":
        level = "WARNING"
    if level not in _LOG_LEVELS:
        raise ValueError(f"Unsupported log level '{value}'. Choose from {', '.join(sorted(_LOG_LEVELS))}.")
    return level


def _from_section(section: Mapping[str, Any]) -> RuntimeConfig:
    config = RuntimeConfig()
    updates: dict[str, Any] = {}
    for key in ("debug", "experimental_workflow_discovery", "disable_xcode_auto_sync"):
        if key in section:
            updates[key] = _parse_bool(section[key])
    if "enabled_workflows" in section:
        updates["enabled_workflows"] = _normalise_workflows(section["enabled_workflows"])
    if section.get("manifests_dir"):
        updates["manifests_dir"] = (WORKSPACE_ROOT / str(section["manifests_dir"])).resolve()
    if section.get("log_level"):
        updates["log_level"] = _normalise_log_level(section["log_level"])
    return replace(config, **updates)


def _apply_environment(config: RuntimeConfig, environ: Mapping[str, str]) -> RuntimeConfig:
    updates: dict[str, Any] = {}
    flags = {
        "DEBUG": "debug",
        "EXPERIMENTAL_WORKFLOW_DISCOVERY": "experimental_workflow_discovery",
        "DISABLE_XCODE_AUTO_SYNC": "disable_xcode_auto_sync",
        "RUNNING_UNDER_XCODE": "running_under_xcode",
    }
    for suffix, field_name in flags.items():
        raw = environ.get(ENV_PREFIX + suffix)
        if raw is not None:
            updates[field_name] = _parse_bool(raw)
    workflows = environ.get(ENV_PREFIX + "ENABLED_WORKFLOWS")
    if workflows is not None:
        updates["enabled_workflows"] = _normalise_workflows(workflows)
    manifests_dir = environ.get(ENV_PREFIX + "MANIFESTS_DIR")
    if manifests_dir:
        updates["manifests_dir"] = Path(manifests_dir).expanduser().resolve()
    log_level = environ.get(ENV_PREFIX + "LOG_LEVEL")
    if log_level:
        updates["log_level"] = _normalise_log_level(log_level)
    return replace(config, **updates)


def build_runtime_config(
    section: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> RuntimeConfig:
    """Combine a ``tool.xcodebuild_mcp`` table with environment overrides."""

    config = _from_section(section or {})
    return _apply_environment(config, os.environ if environ is None else environ)


@lru_cache(maxsize=1)
def load_runtime_config() -> RuntimeConfig:
    """Load runtime configuration from ``pyproject.toml`` and the environment."""

    return build_runtime_config(_get_section(_project_data()))
