"""Project maintenance tools."""
