# src/cache/json_store.py — v2
"""JSON file-based result cache store.

One ``<key>.json`` file per entry under the cache root, written through a
temp file and renamed into place. The root is shared with the tool manager,
so only file names that look like a derived key are ever treated as entries.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pydantic import ValidationError

from weaverkit.cache.base_cache_store import BaseCacheStore
from weaverkit.cache.models import CacheEntry, EntryFile
from weaverkit.core.errors import CacheCorruptionError
from weaverkit.core.fs import TMP_SUFFIX, atomic_write_text

logger = logging.getLogger(__name__)

KEY_PATTERN = re.compile(r"^[0-9a-f]{64}$")
ENTRY_SUFFIX = ".json"


def is_cache_key(key: str) -> bool:
    return bool(KEY_PATTERN.match(key))


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(self, cache_root: Path | str) -> None:
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    @property
    def root(self) -> Path:
        return self._root

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve cache entry by key."""
        path = self._entry_path(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheCorruptionError(key, f"unreadable: {e}") from e
        try:
            return CacheEntry.model_validate_json(text)
        except ValidationError as e:
            raise CacheCorruptionError(key, f"invalid entry: {e.error_count()} error(s)") from e

    async def put(self, key: str, entry: CacheEntry) -> None:
        """Store a cache entry."""
        atomic_write_text(
            self._entry_path(key), entry.model_dump_json(by_alias=True, indent=2)
        )

    async def delete(self, key: str) -> bool:
        """Remove a cache entry."""
        try:
            self._entry_path(key).unlink()
        except FileNotFoundError:
            return False
        return True

    async def list_entries(self) -> list[CacheEntry]:
        """List all readable cache entries."""
        entries: list[CacheEntry] = []
        for path in self._entry_paths():
            try:
                entries.append(CacheEntry.model_validate_json(path.read_text(encoding="utf-8")))
            except (OSError, ValidationError) as e:
                logger.debug("Skipping unreadable cache entry %s: %s", path.name, e)
        return entries

    async def list_files(self) -> list[EntryFile]:
        files: list[EntryFile] = []
        for path in self._entry_paths():
            try:
                st = path.stat()
            except OSError:
                continue
            files.append(EntryFile(key=path.stem, size=st.st_size, mtime=st.st_mtime))
        return files

    async def clear(self) -> int:
        """Remove every entry file and any temp file left by an interrupted write."""
        removed = 0
        for path in self._entry_paths():
            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                continue
        for path in self._root.glob(f".*{ENTRY_SUFFIX}.*{TMP_SUFFIX}"):
            if is_cache_key(path.name[1:].split(".", 1)[0]):
                path.unlink(missing_ok=True)
        return removed

    def _entry_paths(self) -> list[Path]:
        if not self._root.is_dir():
            return []
        return [
            p for p in self._root.glob(f"*{ENTRY_SUFFIX}")
            if p.is_file() and is_cache_key(p.stem)
        ]

    def _entry_path(self, key: str) -> Path:
        """Return file path for a cache key."""
        if not is_cache_key(key):
            raise ValueError(f"Not a cache key: {key!r}")
        return self._root / f"{key}{ENTRY_SUFFIX}"
