"""Predicate-based visibility of tools and workflows per runtime."""
