# src/tools/installer.py — v1
"""Archive extraction for downloaded tool releases.

Supports every tar compression the stdlib understands (tar.xz is what the
weaver releases ship) and zip. Leading path components are stripped like
``tar --strip-components``; members that would land outside the destination
are rejected.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import tarfile
import zipfile
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755


class UnsafeArchiveError(ValueError):
    """Archive is unreadable or contains a member escaping the destination."""


def extract_archive(archive: Path, dest: Path, strip_components: int = 1) -> list[Path]:
    """Extract ``archive`` into ``dest``.

    If no file member is deep enough to survive stripping (a flat archive),
    nothing is stripped.

    Returns:
        Paths of the extracted files.

    Raises:
        UnsafeArchiveError: Unknown format, corrupt archive or unsafe member.
    """
    dest.mkdir(parents=True, exist_ok=True)
    try:
        if tarfile.is_tarfile(archive):
            return _extract_tar(archive, dest, strip_components)
        if zipfile.is_zipfile(archive):
            return _extract_zip(archive, dest, strip_components)
    except (tarfile.TarError, zipfile.BadZipFile, EOFError, OSError) as e:
        raise UnsafeArchiveError(f"Cannot read archive {archive.name}: {e}") from e
    raise UnsafeArchiveError(f"Unsupported archive format: {archive.name}")


def make_executable(path: Path) -> None:
    """Set rwxr-xr-x on ``path``."""
    os.chmod(path, EXECUTABLE_MODE)


def is_executable(path: Path) -> bool:
    if not path.is_file():
        return False
    if os.name == "nt":
        return True
    return bool(path.stat().st_mode & stat.S_IXUSR) and os.access(path, os.X_OK)


def _effective_strip(names: list[str], strip_components: int) -> int:
    if strip_components <= 0 or not names:
        return 0
    if all(len(PurePosixPath(n).parts) > strip_components for n in names):
        return strip_components
    return 0


def _safe_target(dest: Path, name: str, strip: int) -> Path | None:
    """Map an archive member name to a path under ``dest``; None if stripped away."""
    posix = PurePosixPath(name.replace("\\", "/"))
    drive_like = bool(posix.parts) and ":" in posix.parts[0]
    if posix.is_absolute() or ".." in posix.parts or drive_like:
        raise UnsafeArchiveError(f"Unsafe member path in archive: {name!r}")
    parts = [p for p in posix.parts if p not in ("", ".")][strip:]
    if not parts:
        return None
    target = dest.joinpath(*parts)
    root = dest.resolve()
    if root != target.resolve() and root not in target.resolve().parents:
        raise UnsafeArchiveError(f"Member escapes destination: {name!r}")
    return target


def _extract_tar(archive: Path, dest: Path, strip_components: int) -> list[Path]:
    extracted: list[Path] = []
    with tarfile.open(archive, "r:*") as tar:
        members = tar.getmembers()
        strip = _effective_strip([m.name for m in members if m.isfile()], strip_components)
        for member in members:
            target = _safe_target(dest, member.name, strip)
            if target is None:
                continue
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            if not member.isfile():
                logger.debug("Skipping non-regular archive member %s", member.name)
                continue
            source = tar.extractfile(member)
            if source is None:
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with source, open(target, "wb") as out:
                shutil.copyfileobj(source, out)
            os.chmod(target, (member.mode & 0o777) | stat.S_IRUSR | stat.S_IWUSR)
            extracted.append(target)
    return extracted


def _extract_zip(archive: Path, dest: Path, strip_components: int) -> list[Path]:
    extracted: list[Path] = []
    with zipfile.ZipFile(archive) as zf:
        infos = zf.infolist()
        strip = _effective_strip([i.filename for i in infos if not i.is_dir()], strip_components)
        for info in infos:
            target = _safe_target(dest, info.filename, strip)
            if target is None:
                continue
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with zf.open(info) as source, open(target, "wb") as out:
                shutil.copyfileobj(source, out)
            unix_mode = (info.external_attr >> 16) & 0o777
            if unix_mode:
                os.chmod(target, unix_mode | stat.S_IRUSR | stat.S_IWUSR)
            extracted.append(target)
    return extracted
