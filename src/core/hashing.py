# src/core/hashing.py — v1
"""Stable SHA-256 hashing over bytes, files, file sets and structured objects.

Structured objects are hashed through a canonical JSON encoding (sorted keys,
compact separators) so that equal values always produce equal digests,
regardless of dict insertion order.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel

MISSING_FILE_HASH = "missing"
UNREADABLE_FILE_HASH = "error"

_CHUNK_SIZE = 1024 * 1024


def hash_bytes(data: bytes) -> str:
    """SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def hash_string(text: str) -> str:
    """SHA-256 hex digest of UTF-8 encoded text."""
    return hash_bytes(text.encode("utf-8"))


def hash_file(path: str | Path, chunk_size: int = _CHUNK_SIZE) -> str:
    """Stream a file through SHA-256.

    Raises:
        OSError: If the file cannot be read.
    """
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for block in iter(lambda: fh.read(chunk_size), b""):
            digest.update(block)
    return digest.hexdigest()


def hash_files(paths: Iterable[str | Path]) -> dict[str, str]:
    """Map each path to its content digest.

    Missing files map to ``MISSING_FILE_HASH`` and unreadable ones to
    ``UNREADABLE_FILE_HASH`` so a fingerprint can always be computed.
    """
    hashes: dict[str, str] = {}
    for raw in paths:
        path = Path(raw)
        key = str(raw)
        if not path.is_file():
            hashes[key] = MISSING_FILE_HASH
            continue
        try:
            hashes[key] = hash_file(path)
        except OSError:
            hashes[key] = UNREADABLE_FILE_HASH
    return dict(sorted(hashes.items()))


def canonical_json(obj: Any) -> str:
    """Deterministic JSON encoding used for every object hash."""
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=_json_default,
    )


def hash_object(obj: Any) -> str:
    """SHA-256 of the canonical JSON form of ``obj``."""
    return hash_string(canonical_json(obj))


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, bytes):
        return hash_bytes(value)
    raise TypeError(f"Object of type {type(value).__name__} is not hashable as JSON")
