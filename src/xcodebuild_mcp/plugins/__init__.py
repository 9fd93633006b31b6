"""Bundled tool implementations, one subpackage per workflow."""
