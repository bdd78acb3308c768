# tests/conftest.py — v3
"""Shared test fixtures for all unit and integration tests.

Provides a fake release server (httpx.MockTransport), release archives
holding a shell-script stand-in for the tool, a fixed platform target and
a controllable clock. No network access.
"""

from __future__ import annotations

import hashlib
import io
import tarfile
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
import pytest

from weaverkit.logging.context import clear_context
from weaverkit.tools.platform import PlatformTarget

LINUX_X86 = PlatformTarget(
    system="linux", architecture="x86_64", triple="x86_64-unknown-linux-gnu"
)

DOWNLOAD_URL = "https://releases.test/v{version}/weaver-{platform}.tar.xz"
HASH_URL = DOWNLOAD_URL + ".sha256"

FAKE_TOOL_SCRIPT = "#!/bin/sh\necho \"weaver 1.0.0\"\nexit 0\n"



# === Helpers ===


def build_release_archive(
    script: str = FAKE_TOOL_SCRIPT,
    *,
    tool_name: str = "weaver",
    top_dir: str = "weaver-x86_64-unknown-linux-gnu",
    extra_members: dict[str, bytes] | None = None,
    mode: str = "w:xz",
) -> bytes:
    """Tar archive laid out like a real release: <top_dir>/<tool_name>."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode=mode) as tar:
        members = {f"{top_dir}/{tool_name}": script.encode()}
        members.update(extra_members or {})
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


@dataclass
class FakeReleaseServer:
    """Serves one archive and its digest; records every request.

    The published digest covers the executable inside the archive, so it
    defaults to the hash of ``executable``.
    """

    archive: bytes
    digest_text: str | None = None
    fail_first: int = 0
    status_on_failure: int = 503
    executable: bytes = FAKE_TOOL_SCRIPT.encode()
    requests: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.digest_text is None:
            self.digest_text = f"{sha256_hex(self.executable)}  weaver\n"

    @property
    def archive_requests(self) -> int:
        return sum(1 for u in self.requests if not u.endswith(".sha256"))

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url.endswith(".sha256"):
            return httpx.Response(200, text=self.digest_text)
        if self.archive_requests <= self.fail_first:
            return httpx.Response(self.status_on_failure)
        return httpx.Response(200, content=self.archive)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


# === FIXTURES ===


@pytest.fixture(autouse=True)
def _reset_log_context():
    yield
    clear_context()


@pytest.fixture
def tmp_cache_dir(tmp_path: Path) -> Path:
    """Temporary cache root."""
    cache = tmp_path / "cache"
    cache.mkdir()
    return cache


@pytest.fixture
def linux_target() -> PlatformTarget:
    return LINUX_X86


@pytest.fixture
def release_archive() -> bytes:
    return build_release_archive()


@pytest.fixture
def release_server(release_archive: bytes) -> FakeReleaseServer:
    return FakeReleaseServer(archive=release_archive)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_manager(tmp_cache_dir: Path, linux_target: PlatformTarget):
    """Factory for ToolManager wired to a fake server with no retry delay."""
    from weaverkit.tools.manager import ToolManager

    def _make(server: FakeReleaseServer | None = None, **kwargs) -> ToolManager:
        params = {
            "download_url": DOWNLOAD_URL,
            "hash_url": HASH_URL,
            "platform": linux_target,
            "retry_base_delay_s": 0.0,
            "retry_max_delay_s": 0.0,
            "min_disk_space_mb": 0,
            "validate_timeout_s": 5.0,
        }
        params.update(kwargs)
        if server is not None:
            params["transport"] = server.transport
        return ToolManager(tmp_cache_dir, **params)

    return _make


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a text file under tmp_path and return its path."""

    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def archive_builder() -> Callable[..., bytes]:
    return build_release_archive


@pytest.fixture
def server_factory() -> type[FakeReleaseServer]:
    return FakeReleaseServer
