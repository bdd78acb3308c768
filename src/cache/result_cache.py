# src/cache/result_cache.py — v2
"""Operation result cache over a BaseCacheStore.

Cache failures never propagate: every read path falls back to a miss and
every write path to "not stored". Corruption is logged once per key for the
lifetime of the instance and the offending entry is deleted.

TTL is enforced by is_valid() only; get() returns whatever readable entry
exists, so callers gate on is_valid() first.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from weaverkit.cache.base_cache_store import BaseCacheStore
from weaverkit.cache.compression import compress_result, decompress_result
from weaverkit.cache.keys import as_project_config, config_hash, derive_key
from weaverkit.cache.models import (
    NON_CACHEABLE_OPERATIONS,
    OPERATION_TTL_S,
    CacheEntry,
    CacheKeyOptions,
    CacheMetadata,
    CacheStats,
    CacheStorageOptions,
    CacheValidationOptions,
    ProjectConfig,
)
from weaverkit.core.errors import CacheCorruptionError
from weaverkit.core.hashing import canonical_json, hash_files, hash_object
from weaverkit.logging.context import operation_context

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

ConfigLike = ProjectConfig | Mapping[str, Any] | None

_CORRUPT = object()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_integrity(result: Any, metadata: CacheMetadata) -> str:
    """Hash over the uncompressed result and the serialized metadata."""
    return hash_object(
        {"result": result, "metadata": metadata.model_dump(mode="json", by_alias=True)}
    )


class ResultCache:
    """TTL, integrity, compression and size-bounded eviction over a store."""

    def __init__(
        self,
        store: BaseCacheStore,
        *,
        tool_version: str = "1.0.0",
        default_ttl_s: int = 3600,
        ttl_overrides: Mapping[str, int] | None = None,
        max_cache_size_bytes: int = 100 * 1024 * 1024,
        compression_threshold: int = 1024,
        enable_compression: bool = True,
        enable_integrity_check: bool = True,
        enabled: bool = True,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._enabled = enabled
        self._tool_version = tool_version
        self._default_ttl_s = default_ttl_s
        self._ttl_overrides = dict(ttl_overrides or {})
        self._max_size = max_cache_size_bytes
        self._compression_threshold = compression_threshold
        self._enable_compression = enable_compression
        self._enable_integrity_check = enable_integrity_check
        self._clock = clock or _utcnow

        self._hits = 0
        self._misses = 0
        self._stores = 0
        self._invalidations = 0
        self._reported_corrupt: set[str] = set()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def store_backend(self) -> BaseCacheStore:
        return self._store

    @property
    def counters(self) -> dict[str, int]:
        return {
            "hits": self._hits,
            "misses": self._misses,
            "stores": self._stores,
            "invalidations": self._invalidations,
        }

    # --- Keys and TTL ---

    def derive_key(
        self,
        project: str,
        operation: str,
        input_files: Iterable[str | Path],
        config: ConfigLike,
        options: CacheKeyOptions | None = None,
    ) -> str:
        return derive_key(
            project, operation, self._tool_version, input_files, config, options
        )

    def ttl_for(self, operation: str, options: CacheStorageOptions | None = None) -> int:
        """Resolve TTL: per-call option, configured override, built-in table, default."""
        if options is not None and options.ttl_s is not None:
            return options.ttl_s
        if operation in self._ttl_overrides:
            return self._ttl_overrides[operation]
        return OPERATION_TTL_S.get(operation, self._default_ttl_s)

    # --- Lookup ---

    async def is_valid(
        self,
        key: str,
        options: CacheValidationOptions | None = None,
        config: ConfigLike = None,
    ) -> bool:
        if not self._enabled:
            return False
        opts = options or CacheValidationOptions()
        try:
            entry = await self._load(key)
            if entry is None:
                return False
            meta = entry.metadata
            now = self._clock()

            if now >= meta.expires:
                logger.debug("Cache entry %s expired at %s", key, meta.expires)
                return False

            if opts.max_age_s is not None:
                age = (now - meta.created).total_seconds()
                if age > opts.max_age_s:
                    logger.debug("Cache entry %s older than %.0fs", key, opts.max_age_s)
                    return False

            if opts.check_integrity and self._enable_integrity_check:
                if await self._unpack(key, entry) is _CORRUPT:
                    return False

            if opts.check_files and meta.file_hashes:
                current = hash_files(meta.file_hashes)
                if current != meta.file_hashes:
                    changed = sorted(p for p, h in current.items() if meta.file_hashes.get(p) != h)
                    logger.debug("Input files changed for %s: %s", key, changed)
                    return False

            if opts.check_config and config is not None:
                if config_hash(config) != meta.config_hash:
                    logger.debug("Configuration changed for %s", key)
                    return False

            return True
        except Exception as e:
            logger.warning("Cache validation failed for %s: %s", key, e)
            return False

    async def get(self, key: str) -> Any | None:
        """Cached result for ``key`` or None on miss or corruption."""
        if not self._enabled:
            return None
        try:
            entry = await self._load(key)
            result = await self._unpack(key, entry) if entry is not None else _CORRUPT
        except Exception as e:
            logger.warning("Failed to read cache entry %s: %s", key, e)
            result = _CORRUPT

        if result is _CORRUPT:
            self._misses += 1
            return None
        self._hits += 1
        logger.debug("Cache hit for key: %s", key)
        return result

    # --- Mutation ---

    async def store(
        self,
        key: str,
        result: Any,
        project: str,
        operation: str,
        input_files: Iterable[str | Path],
        config: ConfigLike,
        options: CacheStorageOptions | None = None,
    ) -> bool:
        """Persist ``result``; True if an entry was written."""
        if not self._enabled:
            return False
        opts = options or CacheStorageOptions()
        if not opts.cacheable or operation in NON_CACHEABLE_OPERATIONS:
            logger.debug("Operation %s is not cacheable", operation)
            return False
        ttl_s = self.ttl_for(operation, opts)
        if ttl_s <= 0:
            logger.debug("TTL for %s is %ds; not caching", operation, ttl_s)
            return False

        with operation_context(project, operation):
            return await self._write(
                key, result, project, operation, input_files, config, opts, ttl_s
            )

    async def _write(
        self,
        key: str,
        result: Any,
        project: str,
        operation: str,
        input_files: Iterable[str | Path],
        config: ConfigLike,
        opts: CacheStorageOptions,
        ttl_s: int,
    ) -> bool:
        try:
            # Normalize to plain JSON so the stored value equals the hashed one
            payload = json.loads(canonical_json(result))
            now = self._clock()
            metadata = CacheMetadata(
                created=now,
                expires=now + timedelta(seconds=ttl_s),
                project=project,
                operation=operation,
                file_hashes=hash_files(input_files),
                config_hash=config_hash(config),
                tool_version=self._tool_version,
                environment=dict(as_project_config(config).environment),
            )
            entry = CacheEntry(
                key=key,
                result=payload,
                metadata=metadata,
                integrity=compute_integrity(payload, metadata),
            )
            if (
                self._enable_compression
                and opts.compress
                and len(entry.model_dump_json(by_alias=True)) > self._compression_threshold
            ):
                entry.result = compress_result(payload)
                entry.compressed = True

            await self._store.put(key, entry)
        except Exception as e:
            logger.warning("Failed to store cache entry %s: %s", key, e)
            return False

        self._stores += 1
        self._reported_corrupt.discard(key)
        logger.debug(
            "Stored %s/%s as %s (ttl=%ds, compressed=%s)",
            project, operation, key, ttl_s, entry.compressed,
        )
        await self._evict(opts.max_size_bytes if opts.max_size_bytes is not None else self._max_size)
        return True

    async def invalidate(self, project: str, operation: str | None = None) -> int:
        """Delete entries recorded for ``project`` (and ``operation``)."""
        removed = 0
        try:
            for entry in await self._store.list_entries():
                meta = entry.metadata
                if meta.project != project:
                    continue
                if operation is not None and meta.operation != operation:
                    continue
                if await self._store.delete(entry.key):
                    removed += 1
        except Exception as e:
            logger.warning("Cache invalidation for %s failed: %s", project, e)
        self._invalidations += removed
        logger.info(
            "Invalidated %d cache entries for project %s%s",
            removed, project, f" operation {operation}" if operation else "",
        )
        return removed

    async def clear(self) -> None:
        try:
            removed = await self._store.clear()
            logger.info("Cleared %d cache entries", removed)
        except Exception as e:
            logger.warning("Failed to clear cache: %s", e)
        self._hits = self._misses = self._stores = self._invalidations = 0
        self._reported_corrupt.clear()

    async def stats(self) -> CacheStats:
        lookups = self._hits + self._misses
        stats = CacheStats(hit_rate=self._hits / lookups if lookups else 0.0)
        try:
            files = await self._store.list_files()
        except Exception as e:
            logger.warning("Failed to collect cache stats: %s", e)
            return stats
        if files:
            mtimes = [f.mtime for f in files]
            stats.total_entries = len(files)
            stats.total_size = sum(f.size for f in files)
            stats.oldest = datetime.fromtimestamp(min(mtimes), tz=timezone.utc)
            stats.newest = datetime.fromtimestamp(max(mtimes), tz=timezone.utc)
        return stats

    # --- Internals ---

    async def _load(self, key: str) -> CacheEntry | None:
        try:
            return await self._store.get(key)
        except CacheCorruptionError as e:
            await self._discard_corrupt(key, e.reason)
            return None
        except ValueError:
            # Not a well-formed key; nothing can be stored under it
            return None

    async def _unpack(self, key: str, entry: CacheEntry) -> Any:
        """Decompressed, integrity-checked result; _CORRUPT if unusable."""
        try:
            result = (
                decompress_result(entry.result, key)
                if entry.compressed
                else entry.result
            )
        except CacheCorruptionError as e:
            await self._discard_corrupt(key, e.reason)
            return _CORRUPT
        if self._enable_integrity_check:
            if compute_integrity(result, entry.metadata) != entry.integrity:
                await self._discard_corrupt(key, "integrity mismatch")
                return _CORRUPT
        return result

    def _report_corrupt(self, key: str, reason: str) -> None:
        if key in self._reported_corrupt:
            return
        self._reported_corrupt.add(key)
        logger.warning("Corrupted cache entry %s: %s", key, reason)

    async def _discard_corrupt(self, key: str, reason: str) -> None:
        self._report_corrupt(key, reason)
        try:
            await self._store.delete(key)
        except (OSError, ValueError) as e:
            logger.debug("Could not delete corrupted entry %s: %s", key, e)

    async def _evict(self, max_size: int) -> None:
        """Delete oldest-modified entries until total size is within ``max_size``."""
        try:
            files = await self._store.list_files()
            total = sum(f.size for f in files)
            if total <= max_size:
                return
            removed = 0
            for f in sorted(files, key=lambda f: (f.mtime, f.key)):
                if total <= max_size:
                    break
                if await self._store.delete(f.key):
                    removed += 1
                total -= f.size
            logger.info("Evicted %d cache entries (size now %d bytes)", removed, total)
        except Exception as e:
            logger.warning("Cache eviction failed: %s", e)
