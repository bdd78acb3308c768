# tests/unit/tools/test_unit_platform.py — v1
"""Tests for tools/platform.py — host to target triple mapping."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from weaverkit.core.errors import UnsupportedPlatformError
from weaverkit.tools.platform import (
    PlatformTarget,
    host_executable_name,
    render_url,
    resolve_platform,
)


class TestResolvePlatform:
    @pytest.mark.parametrize("system,machine,triple", [
        ("Linux", "x86_64", "x86_64-unknown-linux-gnu"),
        ("Linux", "amd64", "x86_64-unknown-linux-gnu"),
        ("Linux", "aarch64", "aarch64-unknown-linux-gnu"),
        ("Linux", "arm64", "aarch64-unknown-linux-gnu"),
        ("Darwin", "x86_64", "x86_64-apple-darwin"),
        ("Darwin", "arm64", "aarch64-apple-darwin"),
        ("Windows", "AMD64", "x86_64-pc-windows-msvc"),
    ])
    def test_supported(self, system, machine, triple):
        assert resolve_platform(system, machine).triple == triple

    @pytest.mark.parametrize("system,machine", [
        ("Linux", "riscv64"),
        ("FreeBSD", "x86_64"),
        ("Windows", "arm64"),
        ("Linux", "i686"),
    ])
    def test_unsupported(self, system, machine):
        with pytest.raises(UnsupportedPlatformError) as exc_info:
            resolve_platform(system, machine)
        assert exc_info.value.system == system
        assert exc_info.value.machine == machine

    def test_defaults_to_host(self):
        with patch("weaverkit.tools.platform._platform.system", return_value="Darwin"), \
             patch("weaverkit.tools.platform._platform.machine", return_value="arm64"):
            target = resolve_platform()
        assert target == PlatformTarget("darwin", "aarch64", "aarch64-apple-darwin")


class TestExecutableName:
    def test_windows_suffix(self):
        assert resolve_platform("Windows", "x86_64").executable_name("weaver") == "weaver.exe"

    def test_posix_plain(self):
        assert resolve_platform("Linux", "x86_64").executable_name("weaver") == "weaver"

    def test_host_name(self):
        with patch("weaverkit.tools.platform._platform.system", return_value="Windows"):
            assert host_executable_name("weaver") == "weaver.exe"
        with patch("weaverkit.tools.platform._platform.system", return_value="Linux"):
            assert host_executable_name("weaver") == "weaver"


class TestRenderUrl:
    def test_substitutes_placeholders(self, linux_target):
        url = render_url("https://h/v{version}/weaver-{platform}.tar.xz", "0.15.2", linux_target)
        assert url == "https://h/v0.15.2/weaver-x86_64-unknown-linux-gnu.tar.xz"

    def test_repeated_placeholders(self, linux_target):
        assert render_url("{version}/{version}", "1.0.0", linux_target) == "1.0.0/1.0.0"
