"""
xcodebuild-mcp exposes Xcode and iOS simulator tooling as Model Context Protocol tools.

Tools are grouped into workflows that can be enabled and replaced at runtime
without restarting the server.
"""

__version__ = "0.3.0"

__all__ = ["__version__"]
