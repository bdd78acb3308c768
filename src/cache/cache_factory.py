# src/cache/cache_factory.py — v3
"""Factory for result cache instantiation."""

from __future__ import annotations

from weaverkit.cache.base_cache_store import BaseCacheStore
from weaverkit.cache.json_store import JsonCacheStore
from weaverkit.cache.result_cache import Clock, ResultCache
from weaverkit.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the JSON file store under the configured cache root."""
    settings = settings or Settings()
    return JsonCacheStore(cache_root=settings.cache_root)


def create_result_cache(
    settings: Settings | None = None,
    *,
    store: BaseCacheStore | None = None,
    tool_version: str | None = None,
    clock: Clock | None = None,
) -> ResultCache:
    """Build a ResultCache from settings.

    Args:
        settings: Application settings. Defaults to Settings() from the environment.
        store: Optional store override (tests, alternative backends).
        tool_version: Tool version baked into every key; defaults to
            settings.tool_version.
        clock: Optional clock override.
    """
    settings = settings or Settings()
    return ResultCache(
        store or create_cache_store(settings),
        tool_version=tool_version or settings.tool_version,
        default_ttl_s=settings.result_cache_default_ttl_s,
        ttl_overrides=settings.result_cache_ttl_overrides,
        max_cache_size_bytes=settings.result_cache_max_size_bytes,
        compression_threshold=settings.result_cache_compression_threshold,
        enable_compression=settings.result_cache_compression,
        enable_integrity_check=settings.result_cache_integrity_check,
        enabled=settings.result_cache_enabled,
        clock=clock,
    )
