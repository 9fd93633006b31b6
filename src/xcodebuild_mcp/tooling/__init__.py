"""
Utility helpers shared by the server, the CLI and the bundled tools.

This package exposes the runtime configuration, the command executor every tool
runs through, and the response envelopes tools and commands return.
"""

from .config import RuntimeConfig, load_runtime_config
from .executors import CommandExecutionError, CommandExecutor, CommandResult, get_default_command_executor
from .responses import CliResponse, ResponsePayload, ToolResponse, create_error_response, create_text_response

__all__ = [
    "CliResponse",
    "CommandExecutionError",
    "CommandExecutor",
    "CommandResult",
    "ResponsePayload",
    "RuntimeConfig",
    "ToolResponse",
    "create_error_response",
    "create_text_response",
    "get_default_command_executor",
    "load_runtime_config",
]
