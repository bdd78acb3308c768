# src/main.py — v2
"""CLI entry point: tool and cache commands.

Usage:
    weaverkit tool install <version> [--no-verify] [--timeout S] [--retries N]
    weaverkit tool list
    weaverkit tool path <version>
    weaverkit tool prune [--keep V ...]
    weaverkit cache stats
    weaverkit cache clear
    weaverkit cache invalidate <project> [--operation OP]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from weaverkit.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = _load_settings(args)
        _setup_logging(settings, args.verbose)
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        for hint in getattr(exc, "suggestions", []):
            logger.error("  hint: %s", hint)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="weaverkit",
        description=f"weaverkit v{__version__} — tool acquisition and result cache",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--cache-root", type=Path, default=None,
        help="Cache root directory (default: WEAVERKIT_CACHE_ROOT or .nx-weaver-cache)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- tool ---
    p_tool = subparsers.add_parser("tool", help="Manage tool executables")
    tool_sub = p_tool.add_subparsers(dest="tool_command")

    p_install = tool_sub.add_parser("install", help="Download and install a version")
    p_install.add_argument("version", help="Semantic version, e.g. 0.15.2")
    p_install.add_argument(
        "--no-verify", action="store_true",
        help="Skip digest verification",
    )
    p_install.add_argument(
        "--timeout", type=float, default=None,
        help="Per-request timeout in seconds",
    )
    p_install.add_argument(
        "--retries", type=int, default=None,
        help="Maximum download attempts",
    )
    p_install.set_defaults(func=_cmd_tool_install)

    p_list = tool_sub.add_parser("list", help="List installed versions")
    p_list.set_defaults(func=_cmd_tool_list)

    p_path = tool_sub.add_parser("path", help="Print the executable path of a version")
    p_path.add_argument("version")
    p_path.set_defaults(func=_cmd_tool_path)

    p_prune = tool_sub.add_parser("prune", help="Remove versions and temp files")
    p_prune.add_argument(
        "--keep", nargs="*", default=[], metavar="VERSION",
        help="Versions to keep",
    )
    p_prune.set_defaults(func=_cmd_tool_prune)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Inspect the result cache")
    cache_sub = p_cache.add_subparsers(dest="cache_command")

    p_stats = cache_sub.add_parser("stats", help="Show result cache statistics")
    p_stats.set_defaults(func=_cmd_cache_stats)

    p_clear = cache_sub.add_parser("clear", help="Delete every cached result")
    p_clear.set_defaults(func=_cmd_cache_clear)

    p_inval = cache_sub.add_parser("invalidate", help="Delete cached results of a project")
    p_inval.add_argument("project")
    p_inval.add_argument("--operation", default=None, help="Limit to one operation")
    p_inval.set_defaults(func=_cmd_cache_invalidate)

    return parser


def _load_settings(args: argparse.Namespace):
    from weaverkit.config.settings import load_settings

    overrides: dict[str, object] = {}
    if args.cache_root is not None:
        overrides["cache_root"] = args.cache_root
    return load_settings(**overrides)


async def _cmd_tool_install(args: argparse.Namespace, settings) -> int:
    """Install a tool version and print its path."""
    from weaverkit.tools.models import DownloadOptions
    from weaverkit.tools.tool_factory import create_tool_manager

    manager = create_tool_manager(settings)
    options = DownloadOptions(
        timeout_s=args.timeout,
        max_retries=args.retries,
        verify_hash=False if args.no_verify else None,
        on_progress=_progress_printer() if sys.stderr.isatty() else None,
    )
    path = await manager.acquire(args.version, options)
    print(path)
    return 0


async def _cmd_tool_list(args: argparse.Namespace, settings) -> int:
    from weaverkit.tools.tool_factory import create_tool_manager

    manager = create_tool_manager(settings)
    stats = manager.stats()
    if not stats.versions:
        print("No versions installed.")
        return 0
    for v in stats.versions:
        installed = v.installed_at.isoformat(timespec="seconds") if v.installed_at else "-"
        print(f"  {v.version:<20} {_human_size(v.size):>10}  {installed}")
    print(f"\n  {stats.total_versions} version(s), {_human_size(stats.total_size)}")
    return 0


async def _cmd_tool_path(args: argparse.Namespace, settings) -> int:
    from weaverkit.tools.tool_factory import create_tool_manager

    manager = create_tool_manager(settings)
    print(manager.path(args.version))
    return 0


async def _cmd_tool_prune(args: argparse.Namespace, settings) -> int:
    from weaverkit.tools.tool_factory import create_tool_manager

    manager = create_tool_manager(settings)
    removed = manager.cleanup(args.keep)
    print(f"Removed {removed} version(s).")
    return 0


async def _cmd_cache_stats(args: argparse.Namespace, settings) -> int:
    """Display result cache statistics."""
    from weaverkit.cache.cache_factory import create_result_cache

    cache = create_result_cache(settings)
    stats = await cache.stats()
    print(f"\nResult cache at {settings.cache_root}:")
    print(f"  Entries:  {stats.total_entries}")
    print(f"  Size:     {_human_size(stats.total_size)}")
    print(f"  Oldest:   {stats.oldest.isoformat(timespec='seconds') if stats.oldest else '-'}")
    print(f"  Newest:   {stats.newest.isoformat(timespec='seconds') if stats.newest else '-'}")
    return 0


async def _cmd_cache_clear(args: argparse.Namespace, settings) -> int:
    from weaverkit.cache.cache_factory import create_result_cache

    cache = create_result_cache(settings)
    await cache.clear()
    print("Result cache cleared.")
    return 0


async def _cmd_cache_invalidate(args: argparse.Namespace, settings) -> int:
    from weaverkit.cache.cache_factory import create_result_cache

    cache = create_result_cache(settings)
    removed = await cache.invalidate(args.project, args.operation)
    print(f"Invalidated {removed} entr{'y' if removed == 1 else 'ies'}.")
    return 0


def _progress_printer():
    def report(pct: int) -> None:
        sys.stderr.write(f"\r  downloading... {pct:3d}%")
        if pct >= 100:
            sys.stderr.write("\n")
        sys.stderr.flush()

    return report


def _human_size(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f}{unit}" if unit == "B" else f"{value:.1f}{unit}"
        value /= 1024
    return f"{value:.1f}GB"


def _setup_logging(settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from weaverkit.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )


if __name__ == "__main__":
    sys.exit(main())
