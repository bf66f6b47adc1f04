# src/main.py — v2
"""CLI entry point — group, analyze, cache commands.

Usage:
    logsage group <entries.jsonl> [options]
    logsage analyze <entries.jsonl> [options]
    logsage cache stats
    logsage cache clear [--older-than-days N] [--yes]

Input is JSON Lines, one LogEntry object per line ("-" reads stdin).
Results are written as JSON to stdout or to --output; progress and the
run summary go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from logsage.config.settings import ConfigurationError, Settings, load_settings
from logsage.version import __version__

if TYPE_CHECKING:
    from logsage.core.models import LogEntry

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        settings = load_settings()
    except (ConfigurationError, ValueError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 1
    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        return 1
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="logsage",
        description=f"logsage v{__version__} — error grouping and AI analysis",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- group ---
    p_group = subparsers.add_parser(
        "group", help="Group log entries by normalized pattern",
    )
    _add_input_args(p_group)
    p_group.set_defaults(func=_cmd_group)

    # --- analyze ---
    p_analyze = subparsers.add_parser(
        "analyze", help="Group log entries and analyze each pattern",
    )
    _add_input_args(p_analyze)
    p_analyze.add_argument("--provider", default=None, help="LLM provider override")
    p_analyze.add_argument(
        "--model", default=None,
        help="Model override (or provider:model)",
    )
    p_analyze.add_argument(
        "--concurrency", type=int, default=None,
        help="Concurrent provider calls (default: ANALYSIS_CONCURRENCY)",
    )
    p_analyze.add_argument(
        "--no-cache", action="store_true",
        help="Skip cache lookups and writes",
    )
    p_analyze.add_argument(
        "--max-retries", type=int, default=None,
        help="Retries after the first attempt (default: RETRY_MAX_RETRIES)",
    )
    p_analyze.add_argument(
        "--deadline", type=float, default=None,
        help="Overall run deadline in seconds",
    )
    p_analyze.add_argument(
        "--call-log", type=Path, default=None,
        help="Write every provider attempt to this JSON Lines file",
    )
    p_analyze.add_argument(
        "--no-progress", action="store_true",
        help="Do not draw the progress bar",
    )
    p_analyze.set_defaults(func=_cmd_analyze)

    # --- cache ---
    p_cache = subparsers.add_parser("cache", help="Inspect or clear the analysis cache")
    cache_sub = p_cache.add_subparsers(dest="cache_command")

    p_stats = cache_sub.add_parser("stats", help="Show cache statistics")
    p_stats.set_defaults(func=_cmd_cache_stats)

    p_clear = cache_sub.add_parser("clear", help="Remove cached analyses")
    p_clear.add_argument(
        "--older-than-days", type=float, default=None,
        help="Only remove entries older than N days",
    )
    p_clear.add_argument(
        "-y", "--yes", action="store_true",
        help="Do not ask for confirmation",
    )
    p_clear.set_defaults(func=_cmd_cache_clear)

    return parser


def _add_input_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("file", help="JSON Lines file of log entries ('-' for stdin)")
    p.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Write JSON output to this file (default: stdout)",
    )
    p.add_argument(
        "--by-pattern", action="store_true",
        help="Group on pattern only, ignoring severity",
    )
    p.add_argument(
        "--min-severity", default=None,
        help="Drop entries below this severity",
    )


async def _cmd_group(args: argparse.Namespace, settings: Settings) -> int:
    """Group entries and emit the groups as JSON."""
    from logsage.api.facade import group

    entries = _read_entries(args.file)
    groups = group(
        entries,
        settings=settings,
        group_by_severity=False if args.by_pattern else None,
        min_severity=args.min_severity,
    )
    payload = json.dumps([g.model_dump(mode="json") for g in groups], indent=2)
    _emit(payload, args.output)
    print(f"{len(entries)} entries -> {len(groups)} groups", file=sys.stderr)
    return 0


async def _cmd_analyze(args: argparse.Namespace, settings: Settings) -> int:
    """Group, analyze and emit the AnalysisRun as JSON."""
    from logsage.api.facade import analyze, group
    from logsage.tracking.call_logger import CallLogger
    from logsage.tracking.progress import ProgressUpdate
    from logsage.tracking.stats_aggregator import format_summary

    entries = _read_entries(args.file)
    groups = group(
        entries,
        settings=settings,
        group_by_severity=False if args.by_pattern else None,
        min_severity=args.min_severity,
    )
    if not groups:
        logger.warning("No groups to analyze")

    def show_progress(update: ProgressUpdate) -> None:
        end = "\n" if update.is_complete else ""
        print(f"\r{update.format_terminal()}", end=end, file=sys.stderr, flush=True)

    call_logger = CallLogger()
    run = await analyze(
        groups,
        settings=settings,
        call_logger=call_logger,
        progress_callback=None if args.no_progress else show_progress,
        provider=args.provider,
        model=args.model,
        concurrency=args.concurrency,
        cache_enabled=False if args.no_cache else None,
        max_retries=args.max_retries,
        deadline_s=args.deadline,
    )

    _emit(run.model_dump_json(indent=2), args.output)
    print(format_summary(run.statistics), file=sys.stderr)
    if args.call_log is not None:
        call_logger.save(args.call_log)
    return 0


async def _cmd_cache_stats(args: argparse.Namespace, settings: Settings) -> int:
    """Print cache statistics as JSON."""
    from logsage.api.facade import cache_stats

    stats = await cache_stats(settings=settings)
    print(stats.model_dump_json(indent=2))
    return 0


async def _cmd_cache_clear(args: argparse.Namespace, settings: Settings) -> int:
    """Remove cached analyses after confirmation."""
    from logsage.api.facade import cache_clear

    if not args.yes:
        scope = (
            f"older than {args.older_than_days:g} days"
            if args.older_than_days is not None else "all entries"
        )
        answer = input(f"Remove cached analyses ({scope})? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted.", file=sys.stderr)
            return 1

    removed = await cache_clear(older_than_days=args.older_than_days, settings=settings)
    print(f"Removed {removed} cache entries")
    return 0


def _read_entries(source: str) -> list[LogEntry]:
    from logsage.api.facade import load_entries, parse_entries

    if source == "-":
        return parse_entries(sys.stdin, source="<stdin>")
    path = Path(source)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    return load_entries(path)


def _emit(payload: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(payload + "\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(payload + "\n", encoding="utf-8")
    logger.info("Wrote %s", output)


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from logsage.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
