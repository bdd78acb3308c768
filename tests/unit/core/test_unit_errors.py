# tests/unit/core/test_unit_errors.py — v1
"""Tests for core/errors.py — error taxonomy and messages."""

from __future__ import annotations

from weaverkit.core.errors import (
    CacheCorruptionError,
    DiskSpaceWarning,
    DownloadFailedError,
    ExtractionFailedError,
    IntegrityMismatchError,
    InvalidVersionError,
    ToolAcquisitionError,
    UnsupportedPlatformError,
    WeaverKitError,
)

TRIPLE = "x86_64-unknown-linux-gnu"


class TestHierarchy:
    def test_acquisition_errors_share_base(self):
        for cls in (DownloadFailedError, IntegrityMismatchError, ExtractionFailedError):
            assert issubclass(cls, ToolAcquisitionError)
            assert issubclass(cls, WeaverKitError)

    def test_invalid_version_is_value_error(self):
        assert isinstance(InvalidVersionError("x"), ValueError)

    def test_codes_unique(self):
        classes = [
            InvalidVersionError, UnsupportedPlatformError, DownloadFailedError,
            IntegrityMismatchError, ExtractionFailedError, CacheCorruptionError,
            DiskSpaceWarning,
        ]
        codes = [c.code for c in classes]
        assert len(set(codes)) == len(codes)


class TestMessages:
    def test_download_failed_carries_attempts(self):
        errors = [ConnectionError("reset"), TimeoutError("slow")]
        err = DownloadFailedError("1.0.0", TRIPLE, "https://x/weaver.tar.xz", errors)
        assert err.attempts == errors
        assert err.last_error is errors[-1]
        assert "1.0.0" in str(err)
        assert TRIPLE in str(err)
        assert "slow" in str(err)
        assert err.suggestions
        assert err.context == {"version": "1.0.0", "platform": TRIPLE}

    def test_integrity_mismatch(self):
        err = IntegrityMismatchError("1.0.0", TRIPLE, "aa", "bb")
        assert err.expected == "aa"
        assert err.actual == "bb"
        assert err.recoverable is False
        assert "expected aa, got bb" in str(err)

    def test_integrity_mismatch_malformed_digest(self):
        assert "<invalid>" in str(IntegrityMismatchError("1.0.0", TRIPLE, "", "bb"))

    def test_extraction_failed(self):
        err = ExtractionFailedError("Executable missing", "2.0.0", TRIPLE)
        assert str(err) == f"Executable missing (version=2.0.0, platform={TRIPLE})"

    def test_invalid_version(self):
        err = InvalidVersionError("../etc")
        assert err.version == "../etc"
        assert "'../etc'" in str(err)

    def test_unsupported_platform(self):
        err = UnsupportedPlatformError("FreeBSD", "riscv64")
        assert "FreeBSD/riscv64" in str(err)

    def test_disk_space_warning(self):
        assert "Available: 12.50MB" in str(DiskSpaceWarning(12.5, 100))
        assert "Could not determine" in str(DiskSpaceWarning(None, 100, "statvfs failed"))

    def test_cache_corruption(self):
        err = CacheCorruptionError("abc", "truncated")
        assert err.key == "abc"
        assert err.reason == "truncated"
