# src/cache/models.py — v3
"""Result cache domain models: CacheMetadata, CacheEntry, CacheStats, options.

Persisted models serialize with camelCase aliases so entry files read as
{key, result, metadata: {created, expires, project, operation, fileHashes,
configHash, toolVersion, environment}, integrity, compressed}.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

# Built-in per-operation TTLs in seconds; 0 means never stored
OPERATION_TTL_S: dict[str, int] = {
    "validate": 24 * 60 * 60,
    "generate": 60 * 60,
    "docs": 12 * 60 * 60,
    "clean": 0,
}

NON_CACHEABLE_OPERATIONS: frozenset[str] = frozenset({"clean"})


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CacheMetadata(_CamelModel):
    """Provenance of a cached result, used for expiry and drift checks."""

    created: datetime
    expires: datetime
    project: str
    operation: str
    file_hashes: dict[str, str] = {}
    config_hash: str
    tool_version: str
    environment: dict[str, str] = {}


class CacheEntry(_CamelModel):
    """Single result cache entry as stored on disk."""

    key: str
    result: Any = None
    metadata: CacheMetadata
    integrity: str
    compressed: bool = False


class CacheStats(BaseModel):
    total_entries: int = 0
    total_size: int = 0
    hit_rate: float = 0.0
    oldest: datetime | None = None
    newest: datetime | None = None


class ProjectConfig(_CamelModel):
    """Effective per-project tool configuration.

    Only the fields declared here feed the config hash; anything else the
    host passes through is kept but ignored for hashing.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    version: str | None = None
    args: dict[str, list[str]] = {}
    environment: dict[str, str] = {}
    schema_directory: str | None = None
    output_directory: str | None = None

    # Host configs come from JSON/YAML: ports and flags arrive as numbers or bools
    @field_validator("environment", mode="before")
    @classmethod
    def stringify_environment(cls, v: Any) -> Any:  # noqa: N805
        if isinstance(v, Mapping):
            return {str(k): _scalar_text(val) for k, val in v.items()}
        return v

    @field_validator("args", mode="before")
    @classmethod
    def normalize_args(cls, v: Any) -> Any:  # noqa: N805
        if not isinstance(v, Mapping):
            return v
        normalized: dict[str, Any] = {}
        for command, values in v.items():
            if isinstance(values, (str, int, float, bool)):
                values = [values]
            if isinstance(values, (list, tuple)):
                values = [_scalar_text(item) for item in values]
            normalized[str(command)] = values
        return normalized

    @field_validator("version", mode="before")
    @classmethod
    def stringify_version(cls, v: Any) -> Any:  # noqa: N805
        return _scalar_text(v) if isinstance(v, (int, float)) and not isinstance(v, bool) else v


def _scalar_text(value: Any) -> Any:
    """JSON-style text for scalars; other values pass through to validation."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


@dataclass
class CacheKeyOptions:
    include_config: bool = True
    include_environment: bool = True
    custom_components: dict[str, str] | None = None


@dataclass
class CacheValidationOptions:
    """What ResultCache.is_valid() checks beyond existence and expiry."""

    check_integrity: bool = True
    check_files: bool = True
    check_config: bool = True
    max_age_s: float | None = None


@dataclass
class CacheStorageOptions:
    ttl_s: int | None = None
    compress: bool = True
    max_size_bytes: int | None = None
    cacheable: bool = True


@dataclass(frozen=True)
class EntryFile:
    """Size and modification time of one entry file in a store."""

    key: str
    size: int
    mtime: float
