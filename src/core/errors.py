# src/core/errors.py — v1
"""Error taxonomy for tool acquisition and the operation result cache.

Acquisition errors propagate to the caller. Cache errors are recovered
locally as misses and only surface in logs.
"""

from __future__ import annotations

from typing import Any


class WeaverKitError(Exception):
    """Base error carrying a machine-readable code and operator hints."""

    code = "WEAVERKIT_ERROR"
    recoverable = True

    def __init__(
        self,
        message: str,
        *,
        suggestions: list[str] | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        self.suggestions = suggestions or []
        self.context = context or {}
        super().__init__(message)


class InvalidVersionError(WeaverKitError, ValueError):
    """Version string is malformed or sanitizes to nothing."""

    code = "INVALID_VERSION"
    recoverable = False

    def __init__(self, version: str, reason: str = "expected format x.y.z") -> None:
        self.version = version
        super().__init__(
            f"Invalid version {version!r}: {reason}",
            suggestions=["Use a semantic version such as 0.15.2"],
            context={"version": version},
        )


class UnsupportedPlatformError(WeaverKitError):
    """Host OS/CPU combination has no published build."""

    code = "UNSUPPORTED_PLATFORM"
    recoverable = False

    def __init__(self, system: str, machine: str) -> None:
        self.system = system
        self.machine = machine
        super().__init__(
            f"Unsupported platform: {system}/{machine}",
            context={"system": system, "machine": machine},
        )


class ToolAcquisitionError(WeaverKitError):
    """Base for failures that block obtaining an executable."""

    code = "ACQUISITION_ERROR"

    def __init__(
        self,
        message: str,
        version: str,
        platform: str,
        *,
        suggestions: list[str] | None = None,
    ) -> None:
        self.version = version
        self.platform = platform
        super().__init__(
            f"{message} (version={version}, platform={platform})",
            suggestions=suggestions,
            context={"version": version, "platform": platform},
        )


class DownloadFailedError(ToolAcquisitionError):
    """All download attempts failed."""

    code = "DOWNLOAD_ERROR"

    def __init__(
        self,
        version: str,
        platform: str,
        url: str,
        attempts: list[BaseException],
    ) -> None:
        self.url = url
        self.attempts = attempts
        self.last_error = attempts[-1] if attempts else None
        super().__init__(
            f"Failed to download {url} after {len(attempts)} attempt(s): {self.last_error}",
            version,
            platform,
            suggestions=[
                "Check your network connection",
                "Verify the version exists for this platform",
            ],
        )


class IntegrityMismatchError(ToolAcquisitionError):
    """Published digest does not match the downloaded artifact."""

    code = "INTEGRITY_ERROR"
    recoverable = False

    def __init__(self, version: str, platform: str, expected: str, actual: str) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Hash verification failed: expected {expected or '<invalid>'}, got {actual}",
            version,
            platform,
        )


class ExtractionFailedError(ToolAcquisitionError):
    """Archive could not be unpacked into a usable install."""

    code = "EXTRACTION_ERROR"
    recoverable = False


class CacheCorruptionError(WeaverKitError):
    """A cache entry could not be parsed, decompressed or verified."""

    code = "CACHE_CORRUPTION"

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Corrupted cache entry {key}: {reason}", context={"key": key})


class DiskSpaceWarning(WeaverKitError):
    """Free space under the cache root is below the configured minimum."""

    code = "DISK_SPACE"

    def __init__(self, available_mb: float | None, required_mb: float, reason: str = "") -> None:
        self.available_mb = available_mb
        self.required_mb = required_mb
        if available_mb is None:
            message = f"Could not determine free disk space: {reason}"
        else:
            message = (
                f"Insufficient disk space. Available: {available_mb:.2f}MB, "
                f"Required: {required_mb}MB"
            )
        super().__init__(message)
