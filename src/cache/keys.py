# src/cache/keys.py — v2
"""Cache key derivation.

A key is the SHA-256 of one canonical JSON list:
    [project, operation, tool_version, hash(file_hashes),
     config_hash?, environment_hash?, custom_components?]
Identical inputs give identical keys across processes and runs.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from weaverkit.cache.models import CacheKeyOptions, ProjectConfig
from weaverkit.core.hashing import hash_files, hash_object

logger = logging.getLogger(__name__)

CONFIG_KEY_FIELDS: tuple[str, ...] = (
    "version",
    "args",
    "environment",
    "schema_directory",
    "output_directory",
)


def as_project_config(config: ProjectConfig | Mapping[str, Any] | None) -> ProjectConfig:
    """Accept a ProjectConfig, a plain mapping (camelCase or snake_case) or None.

    A mapping that still fails validation is hashed unvalidated: key
    derivation never raises over the shape of a host config.
    """
    if config is None:
        return ProjectConfig()
    if isinstance(config, ProjectConfig):
        return config
    raw = dict(config)
    try:
        return ProjectConfig.model_validate(raw)
    except ValidationError as e:
        logger.warning(
            "Project config does not match the expected shape (%d error(s)); hashing it as given",
            e.error_count(),
        )
    fields: dict[str, Any] = {}
    for name in CONFIG_KEY_FIELDS:
        alias = to_camel(name)
        if alias in raw:
            fields[name] = raw[alias]
        elif name in raw:
            fields[name] = raw[name]
    return ProjectConfig.model_construct(**fields)


def config_projection(config: ProjectConfig | Mapping[str, Any] | None) -> dict[str, Any]:
    """The subset of ``config`` that affects tool output."""
    cfg = as_project_config(config)
    return {name: getattr(cfg, name) for name in CONFIG_KEY_FIELDS}


def config_hash(config: ProjectConfig | Mapping[str, Any] | None) -> str:
    return hash_object(config_projection(config))


def environment_hash(config: ProjectConfig | Mapping[str, Any] | None) -> str:
    """Hash of the environment variables the tool is run with."""
    return hash_object(as_project_config(config).environment)


def derive_key(
    project: str,
    operation: str,
    tool_version: str,
    input_files: Iterable[str | Path],
    config: ProjectConfig | Mapping[str, Any] | None,
    options: CacheKeyOptions | None = None,
) -> str:
    opts = options or CacheKeyOptions()
    components: list[Any] = [
        project,
        operation,
        tool_version,
        hash_object(hash_files(input_files)),
    ]
    if opts.include_config:
        components.append(config_hash(config))
    if opts.include_environment:
        components.append(environment_hash(config))
    if opts.custom_components:
        components.append(dict(opts.custom_components))
    return hash_object(components)
