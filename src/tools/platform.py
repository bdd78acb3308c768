# src/tools/platform.py — v1
"""Map the host OS/CPU to the target triple used in release asset names."""

from __future__ import annotations

import platform as _platform
from dataclasses import dataclass

from weaverkit.core.errors import UnsupportedPlatformError

# Normalized CPU names reported by platform.machine() across OSes
_ARCH_ALIASES: dict[str, str] = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "x64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}

# (system, arch) -> release target triple
SUPPORTED_TARGETS: dict[tuple[str, str], str] = {
    ("linux", "x86_64"): "x86_64-unknown-linux-gnu",
    ("linux", "aarch64"): "aarch64-unknown-linux-gnu",
    ("darwin", "x86_64"): "x86_64-apple-darwin",
    ("darwin", "aarch64"): "aarch64-apple-darwin",
    ("windows", "x86_64"): "x86_64-pc-windows-msvc",
}


@dataclass(frozen=True)
class PlatformTarget:
    """Resolved host platform."""

    system: str
    architecture: str
    triple: str

    @property
    def is_windows(self) -> bool:
        return self.system == "windows"

    def executable_name(self, tool_name: str) -> str:
        return f"{tool_name}.exe" if self.is_windows else tool_name


def resolve_platform(
    system: str | None = None, machine: str | None = None
) -> PlatformTarget:
    """Resolve a platform target, defaulting to the running host.

    Raises:
        UnsupportedPlatformError: If no published build exists for the host.
    """
    raw_system = system if system is not None else _platform.system()
    raw_machine = machine if machine is not None else _platform.machine()

    norm_system = raw_system.strip().lower()
    arch = _ARCH_ALIASES.get(raw_machine.strip().lower())
    triple = SUPPORTED_TARGETS.get((norm_system, arch)) if arch else None
    if triple is None:
        raise UnsupportedPlatformError(raw_system, raw_machine)
    return PlatformTarget(system=norm_system, architecture=arch, triple=triple)


def host_executable_name(tool_name: str) -> str:
    """Executable file name on the running host, without resolving the CPU."""
    if _platform.system().lower() == "windows":
        return f"{tool_name}.exe"
    return tool_name


def render_url(template: str, version: str, target: PlatformTarget) -> str:
    """Substitute {version} and {platform} placeholders."""
    return template.replace("{version}", version).replace("{platform}", target.triple)
