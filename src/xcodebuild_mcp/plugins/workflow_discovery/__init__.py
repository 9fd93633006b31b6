"""Runtime workflow management exposed to MCP clients."""
