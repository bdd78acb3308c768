# tests/unit/tools/test_unit_tool_factory.py — v1
"""Tests for tools/tool_factory.py."""

from __future__ import annotations

from weaverkit.config.settings import Settings
from weaverkit.tools.manager import ToolManager
from weaverkit.tools.tool_factory import create_tool_manager


class TestCreateToolManager:
    def test_uses_settings(self, tmp_path, linux_target):
        s = Settings(_env_file=None, cache_root=tmp_path / "c", tool_name="otel")
        manager = create_tool_manager(s, platform=linux_target)
        assert isinstance(manager, ToolManager)
        assert manager.cache_root == (tmp_path / "c").resolve()
        assert manager.path("1.0.0").name == "otel"

    def test_instances_are_independent(self, tmp_path):
        s = Settings(_env_file=None, cache_root=tmp_path)
        assert create_tool_manager(s) is not create_tool_manager(s)
