"""Workflow catalog, registration tracking and dynamic activation."""
