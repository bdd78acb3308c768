# src/cache/base_cache_store.py — v2
"""Abstract result cache store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from weaverkit.cache.models import CacheEntry, EntryFile


class BaseCacheStore(ABC):
    """Unified interface for result cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve an entry by key; None if absent.

        Raises:
            CacheCorruptionError: If the stored entry cannot be parsed.
        """

    @abstractmethod
    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store an entry atomically."""

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove an entry; True if one was removed."""

    @abstractmethod
    async def list_entries(self) -> list[CacheEntry]:
        """All readable entries; corrupt ones are skipped."""

    @abstractmethod
    async def list_files(self) -> list[EntryFile]:
        """Size and mtime of every entry, without parsing it."""

    @abstractmethod
    async def clear(self) -> int:
        """Remove every entry owned by the store; returns the count."""
