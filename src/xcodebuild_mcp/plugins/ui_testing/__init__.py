"""UI automation tools driven by the AXe command line client."""
