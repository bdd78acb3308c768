# src/core/fs.py — v1
"""Filesystem helpers shared by the tool manager and the result cache."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

TMP_SUFFIX = ".tmp"


def atomic_write_text(path: Path, content: str) -> None:
    """Write ``content`` so that readers see either the old or the new file.

    The data goes to a uniquely named sibling first and is renamed into
    place, which is atomic on POSIX filesystems.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=path.parent, prefix=f".{path.name}.", suffix=TMP_SUFFIX
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def path_size(path: Path) -> int:
    """Size in bytes of a file, or the recursive total of a directory."""
    if path.is_file():
        return path.stat().st_size
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += (Path(root) / name).stat().st_size
            except OSError:
                continue
    return total


def remove_path(path: Path) -> None:
    """Remove a file or directory tree if it exists.

    Raises:
        OSError: If the path exists but cannot be removed.
    """
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


def remove_quietly(path: Path) -> None:
    """Best-effort removal used on cleanup paths after a failure."""
    try:
        remove_path(path)
    except OSError as e:
        logger.warning("Could not remove %s: %s", path, e)
