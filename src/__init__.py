# src/__init__.py — v1
"""specweaver — multi-role specification pipeline with schema-aware refinement planning."""

from specweaver.version import __version__

__all__ = ["__version__"]
