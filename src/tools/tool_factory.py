# src/tools/tool_factory.py — v1
"""Factory for ToolManager instantiation."""

from __future__ import annotations

import httpx

from weaverkit.config.settings import Settings
from weaverkit.tools.manager import ToolManager
from weaverkit.tools.platform import PlatformTarget


def create_tool_manager(
    settings: Settings | None = None,
    *,
    platform: PlatformTarget | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ToolManager:
    """Build a ToolManager from settings.

    Args:
        settings: Application settings. Defaults to Settings() from the environment.
        platform: Optional target override; resolved from the host otherwise.
        transport: Optional httpx transport (e.g. httpx.MockTransport in tests).
    """
    settings = settings or Settings()
    return ToolManager(
        settings.cache_root,
        download_url=settings.download_url,
        hash_url=settings.hash_url,
        tool_name=settings.tool_name,
        download_timeout_s=settings.download_timeout_s,
        max_retries=settings.max_retries,
        verify_hashes=settings.verify_hashes,
        min_disk_space_mb=settings.min_disk_space_mb,
        validate_timeout_s=settings.validate_timeout_s,
        retry_base_delay_s=settings.retry_base_delay_s,
        retry_max_delay_s=settings.retry_max_delay_s,
        platform=platform,
        transport=transport,
    )
