# src/photocull/main.py
"""CLI entry point: analyze, stats, groups commands.

Usage:
    photocull analyze <directory> [options]
    photocull stats <batch_id> --db <path>
    photocull groups <batch_id> --db <path>

Records only outlive the process with the SQLite backend, so ``stats`` and
``groups`` need ``--db`` (or PHOTOCULL_STORE_PATH with
PHOTOCULL_STORE_BACKEND=sqlite).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from photocull.version import __version__

if TYPE_CHECKING:
    from photocull.config.settings import Settings
    from photocull.core.models import BatchProgress

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
    except Exception as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    _setup_logging(settings, args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="photocull",
        description=f"photocull v{__version__}: image quality scoring and duplicate grouping",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--db", type=Path, default=None,
        help="SQLite record store path (switches the backend to sqlite)",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- analyze ---
    p_analyze = subparsers.add_parser(
        "analyze", help="Analyze every image in a directory",
    )
    p_analyze.add_argument("directory", type=Path, help="Directory to scan")
    p_analyze.add_argument(
        "-n", "--name", default=None,
        help="Batch name (default: directory name)",
    )
    p_analyze.add_argument(
        "--no-recursive", action="store_true",
        help="Disable recursive scanning",
    )
    p_analyze.add_argument(
        "--chunk-size", type=int, default=None,
        help="Images analyzed concurrently per chunk",
    )
    p_analyze.add_argument(
        "--similarity", type=float, default=None,
        help="Duplicate similarity threshold, 0-100",
    )
    p_analyze.set_defaults(func=_cmd_analyze)

    # --- stats ---
    p_stats = subparsers.add_parser(
        "stats", help="Show analytics for a stored batch",
    )
    p_stats.add_argument("batch_id", help="Batch identifier")
    p_stats.set_defaults(func=_cmd_stats)

    # --- groups ---
    p_groups = subparsers.add_parser(
        "groups", help="List duplicate groups of a stored batch",
    )
    p_groups.add_argument("batch_id", help="Batch identifier")
    p_groups.set_defaults(func=_cmd_groups)

    return parser


def _load_settings(args: argparse.Namespace) -> Settings:
    from photocull.config.settings import load_settings

    overrides: dict[str, object] = {}
    if args.db is not None:
        overrides["store_backend"] = "sqlite"
        overrides["store_path"] = args.db
    if getattr(args, "chunk_size", None) is not None:
        overrides["chunk_size"] = args.chunk_size
    if getattr(args, "similarity", None) is not None:
        overrides["similarity_threshold"] = args.similarity
    return load_settings(**overrides)


async def _cmd_analyze(args: argparse.Namespace, settings: Settings) -> int:
    """Scan a directory and run it as one batch."""
    from photocull.batch.control import RunControl
    from photocull.batch.orchestrator import BatchOrchestrator
    from photocull.batch.scanner import scan_directory
    from photocull.store.store_factory import create_record_store

    directory: Path = args.directory
    if not directory.is_dir():
        logger.error("Not a directory: %s", directory)
        return 1

    files = scan_directory(directory, recursive=not args.no_recursive)
    store = create_record_store(settings)
    orchestrator = BatchOrchestrator(store, settings)
    control = RunControl()

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, control.cancel)
    except (NotImplementedError, RuntimeError):
        # Windows event loops: Ctrl+C falls back to KeyboardInterrupt
        pass

    def report(progress: BatchProgress) -> None:
        print(
            f"\r  {progress.processed}/{progress.total} ({progress.percentage}%)",
            end="", file=sys.stderr, flush=True,
        )

    try:
        result = await orchestrator.start_batch(
            files, args.name or directory.name, control=control, on_progress=report,
        )
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
        _close(store)
    print(file=sys.stderr)

    if result.batch_id is None:
        print(f"Batch not started ({result.status}): {result.error}")
        return 1

    p = result.progress
    print(f"\nBatch {result.status}:")
    print(f"  Batch ID:     {result.batch_id}")
    print(f"  Processed:    {p.processed}/{p.total}")
    print(f"  Accepted:     {p.accepted}")
    print(f"  Review:       {p.review}")
    print(f"  Rejected:     {p.rejected}")
    print(f"  Errors:       {p.errors}")
    print(f"  Dup. groups:  {len(result.groups)}")
    print(f"  Duration:     {result.duration_seconds:.1f}s")
    return 0 if result.status == "completed" else 3


async def _cmd_stats(args: argparse.Namespace, settings: Settings) -> int:
    """Display analytics for a stored batch."""
    from photocull.store.store_factory import create_record_store
    from photocull.tracking.analytics import compute_batch_analytics

    store = create_record_store(settings)
    try:
        batch = await store.get_batch(args.batch_id)
        if batch is None:
            logger.error("Unknown batch: %s", args.batch_id)
            return 1
        analytics = compute_batch_analytics(await store.list_images(batch.id))
    finally:
        _close(store)

    avg = analytics.averages
    print(f"\nBatch {batch.name} ({batch.status}):")
    print(f"  Images:       {analytics.total_images}/{batch.total_images}")
    print(f"  Accepted:     {analytics.accepted} ({analytics.acceptance_rate}%)")
    print(f"  Review:       {analytics.review}")
    print(f"  Rejected:     {analytics.rejected}")
    print(f"  Duplicates:   {analytics.duplicate_images}")
    print(
        f"  Averages:     overall {avg.overall}, sharpness {avg.sharpness}, "
        f"exposure {avg.exposure}, contrast {avg.contrast}"
    )
    print("  Score bands:  " + ", ".join(
        f"{band}: {count}" for band, count in analytics.score_bands.items()
    ))
    for item in analytics.issues:
        print(f"  {item.issue:<22}{item.count}")
    return 0


async def _cmd_groups(args: argparse.Namespace, settings: Settings) -> int:
    """List duplicate groups and their members."""
    from photocull.store.store_factory import create_record_store

    store = create_record_store(settings)
    try:
        groups = await store.list_duplicate_groups(args.batch_id)
        print(f"\n{len(groups)} duplicate group(s) in batch {args.batch_id}")
        for group in groups:
            best = group.effective_best_image_id
            print(f"\nGroup {group.id} ({group.image_count} images, {group.similarity}% similar)")
            for image in await store.list_group_images(group.id):
                marker = "*" if image.id == best else " "
                print(
                    f"  {marker} {image.filename:<40} score {image.overall_score:>3}  "
                    f"{image.status}"
                )
    finally:
        _close(store)
    return 0


def _close(store: object) -> None:
    close = getattr(store, "close", None)
    if callable(close):
        close()


def _setup_logging(settings: Settings, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from photocull.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("PIL").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
