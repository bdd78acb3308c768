# src/tools/downloader.py — v1
"""Streaming HTTP download of release artifacts and their digest files."""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

import httpx

from weaverkit.version import __version__

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024

# Errors worth another attempt: network, timeouts, HTTP status, local I/O
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (httpx.HTTPError, OSError)


class ArtifactDownloader:
    """Thin httpx wrapper; one client per call so processes share nothing."""

    def __init__(
        self,
        timeout_s: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize downloader.

        Args:
            timeout_s: Default connect/read/write timeout in seconds.
            transport: Optional custom transport (e.g. httpx.MockTransport in tests).
        """
        self._timeout_s = timeout_s
        self._transport = transport

    def _client(self, timeout_s: float | None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s or self._timeout_s),
            follow_redirects=True,
            max_redirects=5,
            headers={"User-Agent": f"weaverkit/{__version__}"},
            transport=self._transport,
        )

    async def download(
        self,
        url: str,
        dest: Path,
        *,
        timeout_s: float | None = None,
        on_progress: Callable[[int], None] | None = None,
    ) -> int:
        """Stream ``url`` into ``dest``.

        Progress is reported as an integer percentage whenever the server
        sends a Content-Length and the percentage changes.

        Returns:
            Number of bytes written.

        Raises:
            httpx.HTTPError: On network failure or non-2xx status.
            OSError: If ``dest`` cannot be written.
        """
        written = 0
        last_pct = -1
        async with self._client(timeout_s) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                total = int(response.headers.get("content-length") or 0)
                with open(dest, "wb") as fh:
                    async for chunk in response.aiter_bytes(_CHUNK_SIZE):
                        fh.write(chunk)
                        written += len(chunk)
                        if on_progress is not None and total > 0:
                            pct = min(round(written * 100 / total), 100)
                            if pct != last_pct:
                                last_pct = pct
                                on_progress(pct)
        logger.debug("Downloaded %d bytes from %s", written, url)
        return written

    async def fetch_text(self, url: str, *, timeout_s: float | None = None) -> str:
        """GET a small text resource such as a .sha256 companion file."""
        async with self._client(timeout_s) as client:
            response = await client.get(url)
            response.raise_for_status()
            return response.text
