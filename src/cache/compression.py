# src/cache/compression.py — v1
"""gzip + base64 packing of cached results."""

from __future__ import annotations

import base64
import binascii
import gzip
import json
import zlib
from typing import Any

from weaverkit.core.errors import CacheCorruptionError


def compress_result(result: Any) -> str:
    """JSON-encode ``result``, gzip it and return base64 text."""
    raw = json.dumps(result, ensure_ascii=False).encode("utf-8")
    return base64.b64encode(gzip.compress(raw)).decode("ascii")


def decompress_result(blob: Any, key: str = "") -> Any:
    """Inverse of compress_result().

    Raises:
        CacheCorruptionError: If the blob is not valid base64/gzip/JSON.
    """
    if not isinstance(blob, str):
        raise CacheCorruptionError(key, "compressed result is not a string")
    try:
        raw = gzip.decompress(base64.b64decode(blob, validate=True))
        return json.loads(raw.decode("utf-8"))
    except (binascii.Error, OSError, EOFError, zlib.error, UnicodeDecodeError, ValueError) as e:
        raise CacheCorruptionError(key, f"decompression failed: {e}") from e
