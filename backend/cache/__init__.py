"""Caches for parsed configs."""
