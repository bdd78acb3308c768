# src/__init__.py — v1
"""weaverkit: tool acquisition and operation result caching for build tools."""

from weaverkit.version import __version__

__all__ = ["__version__"]
