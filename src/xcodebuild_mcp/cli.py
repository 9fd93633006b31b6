"""
Command line interface for xcodebuild-mcp.

``serve`` runs the MCP server over stdio. The remaining commands inspect the
workflow manifest and run individual tools directly from a shell, addressed by
workflow id and CLI command name.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Mapping, Optional

import typer

from . import __version__
from .core.adapter import wrap_handler_with_executor
from .core.catalog import load_tool_definition
from .core.manifest import (
    ManifestValidationError,
    ResolvedManifest,
    ToolManifestEntry,
    get_effective_cli_name,
    get_workflow_tools,
    load_manifest,
    validate_tool_modules,
)
from .server import run_stdio
from .tooling.config import RuntimeConfig, load_runtime_config
from .tooling.responses import CliResponse
from .visibility.exposure import is_tool_exposed_for_runtime, is_workflow_enabled_for_runtime
from .visibility.predicates import PredicateContext

LOGGER = logging.getLogger(__name__)

app = typer.Typer(help="Expose Xcode and simulator tooling over the Model Context Protocol.")
workflows_app = typer.Typer(help="Inspect the workflows declared in the manifest.")
app.add_typer(workflows_app, name="workflows")
tools_app = typer.Typer(help="List and run individual tools from the command line.")
app.add_typer(tools_app, name="tools")
manifest_app = typer.Typer(help="Check the tool and workflow manifest.")
app.add_typer(manifest_app, name="manifest")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(config: RuntimeConfig) -> None:
    # stdout carries the MCP transport, so logs go to stderr.
    logging.basicConfig(stream=sys.stderr, level=config.effective_log_level, format=LOG_FORMAT)


def _emit_response(response: CliResponse, json_output: bool) -> None:
    if json_output:
        typer.echo(response.to_json())
        return

    typer.echo(response.message)
    if response.status != "success" and response.errors:
        typer.echo("")
        typer.echo("Errors:")
        for err in response.errors:
            typer.echo(f"- {err}")


def _load_manifest_or_exit(config: RuntimeConfig, json_output: bool, manifests_dir: Path | None = None) -> ResolvedManifest:
    try:
        return load_manifest(manifests_dir or config.manifests_dir)
    except ManifestValidationError as exc:
        _emit_response(CliResponse.error("Manifest is invalid.", errors=(str(exc),), source="manifest"), json_output)
        raise typer.Exit(code=2) from exc


def _cli_context(config: RuntimeConfig) -> PredicateContext:
    return PredicateContext.from_config(config, runtime="cli")


def _cli_tools(manifest: ResolvedManifest, workflow_id: str, ctx: PredicateContext) -> list[ToolManifestEntry]:
    return [tool for tool in get_workflow_tools(manifest, workflow_id) if is_tool_exposed_for_runtime(tool, ctx)]


def _tool_summary(tool: ToolManifestEntry) -> dict[str, Any]:
    return {
        "id": tool.id,
        "mcp_name": tool.names.mcp,
        "cli_name": get_effective_cli_name(tool),
        "description": tool.description,
        "cli": tool.availability.cli,
        "mcp": tool.availability.mcp,
        "predicates": list(tool.predicates),
        "next_steps": [step.model_dump(by_alias=False, exclude_none=True) for step in tool.next_steps],
    }


@app.callback()
def main_callback() -> None:
    """Configure logging for every command."""
    _configure_logging(load_runtime_config())


@app.command()
def info(json_output: bool = typer.Option(False, "--json", help="Emit a machine-readable JSON response.")) -> None:
    """Print a short summary of the server configuration."""

    config = load_runtime_config()
    payload = {
        "version": __version__,
        "python": sys.version.split()[0],
        "manifests_dir": str(config.manifests_dir),
        "enabled_workflows": list(config.enabled_workflows),
        "debug": config.debug,
        "experimental_workflow_discovery": config.experimental_workflow_discovery,
        "log_level": config.effective_log_level,
    }
    if json_output:
        _emit_response(CliResponse.ok(payload=payload, message="Server configuration.", source="config"), True)
        return

    typer.echo(f"xcodebuild-mcp v{__version__}")
    typer.echo(f"Python            : {payload['python']} (requires >=3.12)")
    typer.echo(f"Manifest directory: {payload['manifests_dir']}")
    typer.echo(f"Enabled workflows : {', '.join(config.enabled_workflows) or 'manifest defaults'}")
    typer.echo(f"Debug             : {config.debug}")
    typer.echo(f"Log level         : {payload['log_level']}")


@app.command()
def serve() -> None:
    """Run the MCP server over stdio."""

    config = load_runtime_config()
    try:
        run_stdio(config)
    except ManifestValidationError as exc:
        typer.secho(f"Cannot start server: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from exc


@workflows_app.command("list")
def list_workflows(json_output: bool = typer.Option(False, "--json", help="Emit a machine-readable JSON response.")) -> None:
    """List the workflows of the manifest."""

    config = load_runtime_config()
    manifest = _load_manifest_or_exit(config, json_output)
    items = [
        {
            "id": workflow.id,
            "title": workflow.title,
            "description": workflow.description,
            "tools": len(workflow.tools),
            "default_enabled": workflow.default_enabled,
            "auto_include": workflow.auto_include,
        }
        for workflow in manifest.workflows.values()
    ]
    if json_output:
        _emit_response(CliResponse.ok(payload={"workflows": items}, message="Workflows.", source="manifest"), True)
        return

    typer.echo("Workflows:")
    for item in items:
        marker = " [default]" if item["default_enabled"] else ""
        typer.echo(f"- {item['id']}{marker}: {item['description']} ({item['tools']} tools)")


@workflows_app.command("describe")
def describe_workflow(
    workflow_id: str = typer.Argument(..., help="Workflow identifier, e.g. 'simulator'."),
    json_output: bool = typer.Option(False, "--json", help="Emit a machine-readable JSON response."),
) -> None:
    """Show a workflow and the tools it contains."""

    config = load_runtime_config()
    manifest = _load_manifest_or_exit(config, json_output)
    workflow = manifest.workflows.get(workflow_id)
    if workflow is None:
        available = ", ".join(manifest.workflows) or "none"
        _emit_response(
            CliResponse.error(f"Workflow '{workflow_id}' not found.", errors=(f"Available: {available}",)),
            json_output,
        )
        raise typer.Exit(code=3)

    tools = [_tool_summary(tool) for tool in get_workflow_tools(manifest, workflow_id)]
    payload = {"id": workflow.id, "title": workflow.title, "description": workflow.description, "tools": tools}
    if json_output:
        _emit_response(CliResponse.ok(payload=payload, message=workflow.title, source="manifest"), True)
        return

    typer.echo(f"{workflow.title} ({workflow.id})")
    typer.echo(workflow.description)
    typer.echo("")
    for tool in tools:
        typer.echo(f"- {tool['mcp_name']} (cli: {tool['cli_name']})")


@tools_app.command("list")
def list_tools(
    workflow: Optional[str] = typer.Option(None, "--workflow", "-w", help="Only list tools of this workflow."),
    json_output: bool = typer.Option(False, "--json", help="Emit a machine-readable JSON response."),
) -> None:
    """List the tools that can be run from the command line."""

    config = load_runtime_config()
    manifest = _load_manifest_or_exit(config, json_output)
    ctx = _cli_context(config)
    workflow_ids = [workflow] if workflow else list(manifest.workflows)

    groups: dict[str, list[dict[str, Any]]] = {}
    for workflow_id in workflow_ids:
        entry = manifest.workflows.get(workflow_id)
        if entry is None or not is_workflow_enabled_for_runtime(entry, ctx):
            continue
        groups[workflow_id] = [_tool_summary(tool) for tool in _cli_tools(manifest, workflow_id, ctx)]

    if json_output:
        _emit_response(CliResponse.ok(payload={"workflows": groups}, message="CLI tools.", source="manifest"), True)
        return

    if not groups:
        typer.echo("No tools available.")
        return
    for workflow_id, tools in groups.items():
        typer.echo(f"{workflow_id}:")
        for tool in tools:
            typer.echo(f"  {tool['cli_name']}")


def _parse_args(args: str | None, json_output: bool) -> Mapping[str, Any]:
    if not args:
        return {}
    try:
        payload = json.loads(args)
    except json.JSONDecodeError as exc:
        _emit_response(CliResponse.error("Invalid JSON for --args.", errors=(str(exc),)), json_output)
        raise typer.Exit(code=4) from exc
    if not isinstance(payload, dict):
        _emit_response(CliResponse.error("--args must be a JSON object."), json_output)
        raise typer.Exit(code=4)
    return payload


@tools_app.command("run")
def run_tool(
    workflow_id: str = typer.Argument(..., help="Workflow the tool belongs to."),
    command: str = typer.Argument(..., help="CLI command name of the tool, e.g. 'list-sims'."),
    args: Optional[str] = typer.Option(None, "--args", "-a", help="JSON object with tool arguments."),
    json_output: bool = typer.Option(False, "--json", help="Emit a machine-readable JSON response."),
) -> None:
    """Run a single tool and print its output."""

    config = load_runtime_config()
    manifest = _load_manifest_or_exit(config, json_output)
    ctx = _cli_context(config)
    workflow = manifest.workflows.get(workflow_id)
    if workflow is None or not is_workflow_enabled_for_runtime(workflow, ctx):
        _emit_response(CliResponse.error(f"Workflow '{workflow_id}' is not available from the CLI."), json_output)
        raise typer.Exit(code=3)

    tools = {get_effective_cli_name(tool): tool for tool in _cli_tools(manifest, workflow_id, ctx)}
    entry = tools.get(command)
    if entry is None:
        available = ", ".join(tools) or "none"
        _emit_response(
            CliResponse.error(f"Unknown command '{command}' in workflow '{workflow_id}'.", errors=(f"Available: {available}",)),
            json_output,
        )
        raise typer.Exit(code=3)

    params = _parse_args(args, json_output)
    definition = load_tool_definition(entry)
    callback = wrap_handler_with_executor(definition.handler)
    result = asyncio.run(callback(params))

    if json_output:
        payload = {"tool": definition.name, "content": [item.text for item in result.content]}
        response = (
            CliResponse.error(result.text, source=definition.name)
            if result.is_error
            else CliResponse.ok(payload=payload, message=f"{definition.name} completed.", source=definition.name)
        )
        _emit_response(response, True)
    else:
        typer.echo(result.text)
    if result.is_error:
        raise typer.Exit(code=1)


@manifest_app.command("validate")
def validate_manifest(
    manifests_dir: Optional[Path] = typer.Option(
        None,
        "--dir",
        help="Manifest directory to validate. Defaults to the configured one.",
    ),
    json_output: bool = typer.Option(False, "--json", help="Emit a machine-readable JSON response."),
) -> None:
    """Validate the manifest and check that every tool module exists."""

    config = load_runtime_config()
    manifest = _load_manifest_or_exit(config, json_output, manifests_dir)
    try:
        validate_tool_modules(manifest)
    except ManifestValidationError as exc:
        _emit_response(CliResponse.error("Manifest is invalid.", errors=(str(exc),), source="manifest"), json_output)
        raise typer.Exit(code=2) from exc

    payload = {"tools": len(manifest.tools), "workflows": len(manifest.workflows)}
    message = f"Manifest is valid: {payload['tools']} tools in {payload['workflows']} workflows."
    _emit_response(CliResponse.ok(payload=payload, message=message, source="manifest"), json_output)


def main() -> None:
    """Entry point for python -m execution."""
    app()


if __name__ == "__main__":
    main()
