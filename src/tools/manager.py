# src/tools/manager.py — v2
"""Acquire, verify and cache versioned tool executables under a cache root.

Layout under the cache root:
    metadata.json                     install records, keyed by version
    <version>/<executable>            one directory per installed version
    temp-<version>-<ms>-<rand>[.d]    download and staging areas

Concurrent acquirers never share temp names. Only the final rename touches
the version directory, so racing processes converge on one valid install
without a cross-process lock.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import time
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

import httpx
from pydantic import ValidationError

from weaverkit.config.settings import DEFAULT_DOWNLOAD_URL, DEFAULT_HASH_URL
from weaverkit.core.errors import (
    DiskSpaceWarning,
    DownloadFailedError,
    ExtractionFailedError,
    IntegrityMismatchError,
    InvalidVersionError,
    UnsupportedPlatformError,
)
from weaverkit.core.fs import atomic_write_text, path_size, remove_path, remove_quietly
from weaverkit.core.hashing import hash_file
from weaverkit.logging.context import tool_context
from weaverkit.tools.downloader import RETRYABLE_ERRORS, ArtifactDownloader
from weaverkit.tools.installer import (
    UnsafeArchiveError,
    extract_archive,
    is_executable,
    make_executable,
)
from weaverkit.tools.models import (
    METADATA_SCHEMA_VERSION,
    DownloadOptions,
    ToolCacheStats,
    ToolMetadata,
    ToolMetadataFile,
    ToolVersionStats,
)
from weaverkit.tools.platform import (
    PlatformTarget,
    host_executable_name,
    render_url,
    resolve_platform,
)
from weaverkit.tools.retry import RetryExhausted, RetryPolicy, with_retry

logger = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(
    r"^\d+\.\d+\.\d+(-[a-zA-Z0-9.-]+)?(\+[a-zA-Z0-9.-]+)?$"
)
METADATA_FILE = "metadata.json"
TEMP_PREFIX = "temp-"

_UNSAFE_VERSION_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_HEX_DIGEST = re.compile(r"^[0-9a-f]{32,}$")


def is_valid_version(version: str) -> bool:
    return bool(VERSION_PATTERN.match(version))


def sanitize_version(version: str) -> str:
    """Drop characters outside [A-Za-z0-9.-] and leading dots.

    Leading dots are removed too so that '..' can never name a parent
    directory.
    """
    return _UNSAFE_VERSION_CHARS.sub("", version).lstrip(".")


def parse_published_digest(text: str) -> str | None:
    """Extract the digest from 'hash  filename' or bare-hash content."""
    tokens = text.strip().split()
    if not tokens:
        return None
    candidate = tokens[0].lower()
    return candidate if _HEX_DIGEST.match(candidate) else None


class ToolManager:
    """Download, verify and cache tool executables per version."""

    def __init__(
        self,
        cache_root: Path | str,
        *,
        download_url: str = DEFAULT_DOWNLOAD_URL,
        hash_url: str = DEFAULT_HASH_URL,
        tool_name: str = "weaver",
        download_timeout_s: float = 30.0,
        max_retries: int = 3,
        verify_hashes: bool = True,
        min_disk_space_mb: float = 100,
        validate_timeout_s: float = 10.0,
        retry_base_delay_s: float = 1.0,
        retry_max_delay_s: float = 10.0,
        platform: PlatformTarget | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._root = Path(cache_root).expanduser().resolve()
        self._root.mkdir(parents=True, exist_ok=True)
        self._download_url = download_url
        self._hash_url = hash_url
        self._tool_name = tool_name
        self._download_timeout_s = download_timeout_s
        self._max_retries = max_retries
        self._verify_hashes = verify_hashes
        self._min_disk_space_mb = min_disk_space_mb
        self._validate_timeout_s = validate_timeout_s
        self._retry_base_delay_s = retry_base_delay_s
        self._retry_max_delay_s = retry_max_delay_s
        self._platform = platform
        self._downloader = ArtifactDownloader(
            timeout_s=download_timeout_s, transport=transport
        )

    @property
    def cache_root(self) -> Path:
        return self._root

    @property
    def metadata_path(self) -> Path:
        return self._root / METADATA_FILE

    @property
    def executable_name(self) -> str:
        if self._platform is not None:
            return self._platform.executable_name(self._tool_name)
        return host_executable_name(self._tool_name)

    # --- Public API ---

    def path(self, version: str) -> Path:
        """Expected executable path for ``version``. Touches nothing.

        Raises:
            InvalidVersionError: If nothing usable is left after sanitizing.
        """
        safe = sanitize_version(version)
        if not safe:
            raise InvalidVersionError(version, "no usable characters for a path")
        return self._root / safe / self.executable_name

    async def acquire(
        self, version: str, options: DownloadOptions | None = None
    ) -> Path:
        """Return the executable for ``version``, installing it if needed.

        Raises:
            InvalidVersionError: Malformed version string.
            UnsupportedPlatformError: No build for this host.
            DownloadFailedError: All download attempts failed.
            ExtractionFailedError: Archive unusable; staging removed.
            IntegrityMismatchError: Published digest differs; staging removed.
            ValueError: Per-call timeout or retry count out of range.
        """
        if not is_valid_version(version):
            raise InvalidVersionError(version)
        opts = options or DownloadOptions()
        timeout_s = self._download_timeout_s if opts.timeout_s is None else opts.timeout_s
        max_attempts = self._max_retries if opts.max_retries is None else opts.max_retries
        if max_attempts < 1:
            raise ValueError(f"max_retries must be >= 1 (got {max_attempts})")
        if timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0 (got {timeout_s})")

        with tool_context(version):
            exe_path = self.path(version)
            if await self.validate(version):
                if self.get_metadata(version) is None:
                    self._backfill_metadata(version, exe_path)
                logger.info("%s %s already installed at %s", self._tool_name, version, exe_path)
                return exe_path

            target = self._target()
            self.check_disk_space()

            policy = RetryPolicy(
                max_attempts=max_attempts,
                base_delay_s=self._retry_base_delay_s,
                max_delay_s=self._retry_max_delay_s,
            )
            verify = self._verify_hashes and opts.verify_hash is not False

            download_url = render_url(self._download_url, version, target)
            stamp = f"{sanitize_version(version)}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"
            archive_path = self._root / f"{TEMP_PREFIX}{stamp}"
            staging_dir = self._root / f"{TEMP_PREFIX}{stamp}.d"

            logger.info("Downloading %s %s from %s", self._tool_name, version, download_url)
            try:
                await self._download(
                    download_url, archive_path, version, target, policy, timeout_s, opts
                )
                staged_exe = self._extract(archive_path, staging_dir, version, target)
                digest = None
                if verify:
                    digest = await self._verify(staged_exe, version, target, policy, timeout_s)
                installed = self._promote(staging_dir, version, target, stamp)
            finally:
                remove_quietly(archive_path)
                remove_quietly(staging_dir)

            self._save_metadata(version, target, download_url, installed, digest)
            logger.info("Installed %s %s at %s", self._tool_name, version, installed)
            return installed

    async def validate(self, version: str) -> bool:
        """True if the executable exists, is executable and answers --version.

        Never raises.
        """
        try:
            exe = self.path(version)
            if not exe.is_file():
                logger.debug("Executable not found: %s", exe)
                return False
            if not is_executable(exe):
                logger.debug("Executable not accessible: %s", exe)
                return False
            return await self._probe(exe)
        except Exception as e:
            logger.debug("Validation error for version %s: %s", version, e)
            return False

    def list_installed(self) -> list[str]:
        """Installed version directory names, sorted."""
        if not self._root.is_dir():
            return []
        return sorted(
            p.name
            for p in self._root.iterdir()
            if p.is_dir() and not p.name.startswith((TEMP_PREFIX, "."))
        )

    def cleanup(self, keep_versions: Iterable[str] = ()) -> int:
        """Remove versions not in ``keep_versions`` and every temp entry.

        Individual failures are logged and skipped.

        Returns:
            Number of version directories removed.
        """
        keep = {sanitize_version(v) for v in keep_versions}
        removed: list[str] = []
        for version in self.list_installed():
            if version in keep:
                continue
            try:
                remove_path(self._root / version)
            except OSError as e:
                logger.warning("Failed to remove version %s: %s", version, e)
                continue
            removed.append(version)
            logger.info("Cleaned up %s version: %s", self._tool_name, version)

        temp_count = 0
        for entry in self._root.glob(f"{TEMP_PREFIX}*"):
            try:
                remove_path(entry)
                temp_count += 1
            except OSError as e:
                logger.warning("Failed to remove temporary entry %s: %s", entry.name, e)

        if removed:
            self._forget(removed)
        logger.info(
            "Cleanup completed. Removed %d versions and %d temporary entries",
            len(removed), temp_count,
        )
        return len(removed)

    def get_metadata(self, version: str) -> ToolMetadata | None:
        return self._load_metadata().tools.get(version)

    def stats(self) -> ToolCacheStats:
        """Per-version disk usage of installed tools."""
        records = self._load_metadata().tools
        by_dir = {sanitize_version(v): m for v, m in records.items()}
        stats = ToolCacheStats()
        for version in self.list_installed():
            size = path_size(self._root / version)
            meta = by_dir.get(version)
            stats.versions.append(
                ToolVersionStats(
                    version=version,
                    size=size,
                    installed_at=meta.installed_at if meta else None,
                )
            )
            stats.total_size += size
        stats.total_versions = len(stats.versions)
        return stats

    def check_disk_space(self) -> bool:
        """Log a DiskSpaceWarning if free space is below the minimum; never raises."""
        try:
            usage = shutil.disk_usage(self._root)
        except OSError as e:
            logger.warning("%s", DiskSpaceWarning(None, self._min_disk_space_mb, str(e)))
            return False
        available_mb = usage.free / (1024 * 1024)
        if available_mb < self._min_disk_space_mb:
            logger.warning("%s", DiskSpaceWarning(available_mb, self._min_disk_space_mb))
            return False
        logger.debug("Disk space validation passed. Available: %.2fMB", available_mb)
        return True

    # --- Install steps ---

    def _target(self) -> PlatformTarget:
        if self._platform is None:
            self._platform = resolve_platform()
        return self._platform

    async def _download(
        self,
        url: str,
        archive_path: Path,
        version: str,
        target: PlatformTarget,
        policy: RetryPolicy,
        timeout_s: float,
        opts: DownloadOptions,
    ) -> None:
        def discard_partial(_attempt: int, _error: BaseException) -> None:
            remove_quietly(archive_path)

        try:
            await with_retry(
                lambda: self._downloader.download(
                    url, archive_path, timeout_s=timeout_s, on_progress=opts.on_progress
                ),
                policy,
                operation=f"download {self._tool_name} {version}",
                retry_on=RETRYABLE_ERRORS,
                on_failure=discard_partial,
            )
        except RetryExhausted as e:
            raise DownloadFailedError(version, target.triple, url, e.errors) from e.last_error

    def _extract(
        self, archive_path: Path, staging_dir: Path, version: str, target: PlatformTarget
    ) -> Path:
        try:
            extract_archive(archive_path, staging_dir, strip_components=1)
            exe = staging_dir / self.executable_name
            if not exe.is_file():
                raise ExtractionFailedError(
                    f"Executable {self.executable_name!r} not found in archive",
                    version, target.triple,
                )
            make_executable(exe)
        except (UnsafeArchiveError, OSError) as e:
            raise ExtractionFailedError(
                f"Failed to extract executable: {e}", version, target.triple
            ) from e
        return exe

    async def _verify(
        self,
        executable: Path,
        version: str,
        target: PlatformTarget,
        policy: RetryPolicy,
        timeout_s: float,
    ) -> str:
        """Compare the published digest with the SHA-256 of the extracted executable."""
        hash_url = render_url(self._hash_url, version, target)
        logger.info("Verifying %s %s against %s", self._tool_name, version, hash_url)
        try:
            published = await with_retry(
                lambda: self._downloader.fetch_text(hash_url, timeout_s=timeout_s),
                policy,
                operation=f"fetch digest for {self._tool_name} {version}",
                retry_on=RETRYABLE_ERRORS,
            )
        except RetryExhausted as e:
            raise DownloadFailedError(version, target.triple, hash_url, e.errors) from e.last_error

        expected = parse_published_digest(published)
        actual = hash_file(executable)
        if expected is None or expected != actual:
            raise IntegrityMismatchError(version, target.triple, expected or "", actual)
        logger.info("Hash verification successful for %s %s", self._tool_name, version)
        return actual

    def _promote(
        self, staging_dir: Path, version: str, target: PlatformTarget, stamp: str
    ) -> Path:
        """Rename the verified staging directory into the version slot."""
        version_dir = self._root / sanitize_version(version)
        exe = version_dir / self.executable_name
        previous = self._root / f"{TEMP_PREFIX}{stamp}.old"

        if version_dir.exists():
            os.replace(version_dir, previous)
        try:
            os.replace(staging_dir, version_dir)
        except OSError as e:
            # Another process promoted between our two renames
            if is_executable(exe):
                logger.info("Concurrent install of %s %s detected; using it", self._tool_name, version)
                return exe
            raise ExtractionFailedError(
                f"Failed to install into {version_dir}: {e}", version, target.triple
            ) from e
        finally:
            remove_quietly(previous)
        return exe

    async def _probe(self, exe: Path) -> bool:
        proc = await asyncio.create_subprocess_exec(
            str(exe),
            "--version",
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        try:
            returncode = await asyncio.wait_for(proc.wait(), timeout=self._validate_timeout_s)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.debug("%s --version timed out after %.1fs", exe, self._validate_timeout_s)
            return False
        if returncode != 0:
            logger.debug("%s --version exited with %d", exe, returncode)
        return returncode == 0

    # --- Metadata ---

    def _load_metadata(self) -> ToolMetadataFile:
        path = self.metadata_path
        if not path.is_file():
            return ToolMetadataFile()
        try:
            data = ToolMetadataFile.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning("Ignoring unreadable tool metadata %s: %s", path, e)
            return ToolMetadataFile()
        if data.schema_version != METADATA_SCHEMA_VERSION:
            logger.warning(
                "Ignoring tool metadata with schema version %d (expected %d)",
                data.schema_version, METADATA_SCHEMA_VERSION,
            )
            return ToolMetadataFile()
        return data

    def _write_metadata(self, data: ToolMetadataFile) -> None:
        atomic_write_text(self.metadata_path, data.model_dump_json(by_alias=True, indent=2))

    def _save_metadata(
        self,
        version: str,
        target: PlatformTarget,
        download_url: str,
        executable: Path,
        digest: str | None,
    ) -> None:
        try:
            size: int | None = executable.stat().st_size
        except OSError:
            size = None
        data = self._load_metadata()
        data.tools[version] = ToolMetadata(
            version=version,
            platform=target.triple,
            architecture=target.architecture,
            download_url=download_url,
            hash=digest,
            installed_at=datetime.now(timezone.utc),
            executable_path=str(executable),
            file_size_bytes=size,
        )
        self._write_metadata(data)
        logger.debug("Saved metadata for %s %s", self._tool_name, version)

    def _backfill_metadata(self, version: str, executable: Path) -> None:
        """Record a valid install whose entry was lost, e.g. to a concurrent metadata.json writer."""
        try:
            target = self._target()
            self._save_metadata(
                version,
                target,
                render_url(self._download_url, version, target),
                executable,
                hash_file(executable),
            )
        except (OSError, UnsupportedPlatformError) as e:
            logger.warning("Could not record metadata for %s %s: %s", self._tool_name, version, e)
            return
        logger.info("Recorded missing metadata for %s %s", self._tool_name, version)

    def _forget(self, version_dirs: list[str]) -> None:
        data = self._load_metadata()
        gone = set(version_dirs)
        kept = {v: m for v, m in data.tools.items() if sanitize_version(v) not in gone}
        if len(kept) != len(data.tools):
            data.tools = kept
            try:
                self._write_metadata(data)
            except OSError as e:
                logger.warning("Failed to update tool metadata: %s", e)
