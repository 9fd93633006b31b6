"""Project discovery tools: find projects, list schemes, inspect build settings."""
