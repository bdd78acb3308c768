# src/tools/models.py — v1
"""Tool acquisition models: ToolMetadata, ToolMetadataFile, DownloadOptions, stats."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

METADATA_SCHEMA_VERSION = 1


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ToolMetadata(_CamelModel):
    """Record of one completed install, written to metadata.json."""

    version: str
    platform: str
    architecture: str
    download_url: str
    hash: str | None = None
    installed_at: datetime
    executable_path: str
    file_size_bytes: int | None = None


class ToolMetadataFile(_CamelModel):
    """Versioned container for every install record under a cache root."""

    schema_version: int = METADATA_SCHEMA_VERSION
    tools: dict[str, ToolMetadata] = {}


@dataclass
class DownloadOptions:
    """Per-call overrides for ToolManager.acquire(); None keeps the manager default."""

    timeout_s: float | None = None
    max_retries: int | None = None
    verify_hash: bool | None = None
    on_progress: Callable[[int], None] | None = None


class ToolVersionStats(BaseModel):
    version: str
    size: int
    installed_at: datetime | None = None


class ToolCacheStats(BaseModel):
    """Disk usage of installed tool versions."""

    total_versions: int = 0
    total_size: int = 0
    versions: list[ToolVersionStats] = []
