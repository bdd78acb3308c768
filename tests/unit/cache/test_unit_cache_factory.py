# tests/unit/cache/test_unit_cache_factory.py — v4
"""Tests for cache/cache_factory.py."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from weaverkit.cache.cache_factory import create_cache_store, create_result_cache
from weaverkit.cache.json_store import JsonCacheStore
from weaverkit.cache.result_cache import ResultCache
from weaverkit.config.settings import Settings


class TestCreateCacheStore:
    def test_json_under_cache_root(self, tmp_path):
        s = Settings(_env_file=None, cache_root=tmp_path / "c")
        store = create_cache_store(s)
        assert isinstance(store, JsonCacheStore)
        assert store.root == tmp_path / "c"
        assert store.root.is_dir()


class TestCreateResultCache:
    def test_settings_wired(self, tmp_path):
        s = Settings(
            _env_file=None,
            cache_root=tmp_path,
            tool_version="2.1.0",
            result_cache_ttl_overrides={"generate": 5},
        )
        cache = create_result_cache(s)
        assert isinstance(cache, ResultCache)
        assert isinstance(cache.store_backend, JsonCacheStore)
        assert cache.ttl_for("generate") == 5
        assert cache.ttl_for("unknown") == s.result_cache_default_ttl_s

    def test_tool_version_in_keys(self, tmp_path):
        s = Settings(_env_file=None, cache_root=tmp_path)
        a = create_result_cache(s, tool_version="1.0.0")
        b = create_result_cache(s, tool_version="1.1.0")
        assert a.derive_key("p", "validate", [], None) != b.derive_key("p", "validate", [], None)

    def test_store_override(self, tmp_path):
        store = MagicMock(spec=JsonCacheStore)
        cache = create_result_cache(Settings(_env_file=None, cache_root=tmp_path), store=store)
        assert cache.store_backend is store

    def test_clock_override(self, tmp_path, fake_clock):
        cache = create_result_cache(
            Settings(_env_file=None, cache_root=tmp_path), clock=fake_clock
        )
        assert cache._clock is fake_clock

    @pytest.mark.asyncio
    async def test_disabled_cache_is_inert(self, tmp_path, write_file):
        s = Settings(_env_file=None, cache_root=tmp_path / "c", result_cache_enabled=False)
        cache = create_result_cache(s)
        assert cache.enabled is False
        schema = write_file("s.yaml", "a")
        key = cache.derive_key("p", "validate", [schema], None)
        assert await cache.store(key, {"ok": True}, "p", "validate", [schema], None) is False
        assert await cache.is_valid(key) is False
        assert await cache.get(key) is None
        assert list((tmp_path / "c").iterdir()) == []
