# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for the tool cache and result cache settings. The host
build orchestrator may also construct Settings directly with overrides.
Environment variables use the WEAVERKIT_ prefix (e.g. WEAVERKIT_MAX_RETRIES).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DOWNLOAD_URL = (
    "https://github.com/open-telemetry/weaver/releases/download/"
    "v{version}/weaver-{platform}.tar.xz"
)
DEFAULT_HASH_URL = DEFAULT_DOWNLOAD_URL + ".sha256"


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="WEAVERKIT_",
        extra="ignore",
    )

    # === Shared cache root ===
    cache_root: Path = Path(".nx-weaver-cache")

    # === Tool acquisition ===
    tool_name: str = "weaver"
    tool_version: str = "1.0.0"
    download_url: str = DEFAULT_DOWNLOAD_URL
    hash_url: str = DEFAULT_HASH_URL
    download_timeout_s: float = 30.0
    max_retries: int = 3
    retry_base_delay_s: float = 1.0
    retry_max_delay_s: float = 10.0
    verify_hashes: bool = True
    min_disk_space_mb: int = 100
    validate_timeout_s: float = 10.0

    # === Result cache ===
    result_cache_enabled: bool = True
    result_cache_default_ttl_s: int = 3600
    result_cache_ttl_overrides: dict[str, int] = {}
    result_cache_max_size_bytes: int = 100 * 1024 * 1024
    result_cache_compression: bool = True
    result_cache_compression_threshold: int = 1024
    result_cache_integrity_check: bool = True

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:  # noqa: N805
        """At least one download attempt is always made."""
        if v < 1:
            raise ValueError("max_retries must be >= 1")
        return v

    @field_validator("download_url")
    @classmethod
    def validate_download_url(cls, v: str) -> str:  # noqa: N805
        if "{version}" not in v:
            raise ValueError("download_url must contain a {version} placeholder")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.verify_hashes and not self.hash_url:
            errors.append("VERIFY_HASHES requires HASH_URL")

        if self.result_cache_compression_threshold < 0:
            errors.append("RESULT_CACHE_COMPRESSION_THRESHOLD must be >= 0")

        negative = sorted(op for op, ttl in self.result_cache_ttl_overrides.items() if ttl < 0)
        if negative:
            errors.append(
                "RESULT_CACHE_TTL_OVERRIDES must be >= 0 (got negative for "
                + ", ".join(negative) + ")"
            )

        if self.retry_max_delay_s < self.retry_base_delay_s:
            errors.append("RETRY_MAX_DELAY_S must be >= RETRY_BASE_DELAY_S")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-project config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
