"""CLI with subcommands: run, rescan, fixdb."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from .core.config import RunContext
from .core.errors import MediaTidyError, ValidationError
from .core.models import RecordStatus
from .core.protocols import ProgressReporter
from .logging.rich_logger import QuietProgressReporter, RichProgressReporter, setup_logging

logger = logging.getLogger(__name__)


EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID = 2
EXIT_INTERRUPTED = 130


def _add_mode_flags(parser: argparse.ArgumentParser, dest_prefix: str = "") -> None:
    parser.add_argument(
        "-d", "--dry-run",
        dest=f"{dest_prefix}dry_run",
        action="store_true",
        help="Show what would be done without touching files or the index",
    )
    parser.add_argument(
        "-q", "--quiet",
        dest=f"{dest_prefix}quiet",
        action="store_true",
        help="Suppress per-file output (the summary is always shown)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="mediatidy",
        description="Organize photos and videos into a dated library.",
    )

    # Global options, OR-ed with the per-command ones
    _add_mode_flags(parser, dest_prefix="global_")
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # ============ RUN command ============
    run_parser = subparsers.add_parser(
        "run",
        help="Organize media from a source directory into a library",
    )
    run_parser.add_argument("source", type=Path, nargs="?", help="Directory to organize")
    run_parser.add_argument("destination", type=Path, nargs="?", help="Library root")
    _add_mode_flags(run_parser)
    run_parser.add_argument(
        "--limit",
        type=int,
        default=0,
        help="Process at most N media files (default: 0, no limit)",
    )
    run_parser.add_argument(
        "--extensions", "--ext",
        dest="extensions",
        default="",
        help='Process only these extensions, pipe separated (e.g. "pdf|txt")',
    )
    run_parser.add_argument(
        "--type",
        dest="media_type",
        default="",
        help="Media type (and library folder) for the custom extensions",
    )
    run_parser.add_argument(
        "-f", "--fix-dates",
        action="store_true",
        help="Set placed files' modification time to the capture date",
    )
    run_parser.add_argument(
        "--db-only",
        action="store_true",
        help="Only build the index, never copy or move files",
    )
    run_parser.add_argument(
        "--thumbnails",
        action="store_true",
        help="Create thumbnails under DESTINATION/.thumbnails",
    )
    run_parser.add_argument(
        "-m", "--move",
        action="store_true",
        help="Move files instead of copying them",
    )
    run_parser.add_argument(
        "--exclude",
        default="",
        help="Skip paths containing any of these substrings, pipe separated",
    )

    # ============ RESCAN command ============
    rescan_parser = subparsers.add_parser(
        "rescan",
        help="Reconcile a library's index with the files actually in it",
    )
    rescan_parser.add_argument("directory", type=Path, nargs="?", help="Library root")
    _add_mode_flags(rescan_parser)

    # ============ FIXDB command ============
    fixdb_parser = subparsers.add_parser(
        "fixdb",
        help="Repair stored paths containing '/./' segments",
    )
    fixdb_parser.add_argument("directory", type=Path, nargs="?", help="Library root")
    _add_mode_flags(fixdb_parser)

    return parser


# ============ Command Handlers ============

def cmd_run(args: argparse.Namespace, reporter: ProgressReporter) -> int:
    """Handle the run command."""
    from .services.app_context import run_tidy

    if args.source is None:
        raise ValidationError("Source and destination directory arguments are missing.")
    if args.destination is None:
        raise ValidationError("Destination directory argument is missing.")

    ctx = RunContext.create(
        source_dir=args.source,
        dest_dir=args.destination,
        dry_run=args.dry_run,
        limit=args.limit,
        custom_extensions=args.extensions,
        custom_media_type=args.media_type,
        exclude_patterns=args.exclude,
        fix_creation_dates=args.fix_dates,
        db_only=args.db_only,
        create_thumbnails=args.thumbnails,
        move_files=args.move,
        quiet=args.quiet,
    )

    reporter.print_header("mediatidy run" + (" (dry run)" if ctx.dry_run else ""))
    reporter.print_config({
        "Source": str(ctx.source_dir),
        "Destination": str(ctx.dest_dir),
        "Mode": "move" if ctx.move_files else "copy",
        "Limit": ctx.limit or "none",
        "Extensions": "|".join(ctx.custom_extensions) or "photos and videos",
        "Media Type": ctx.custom_media_type or "auto",
        "Exclude": "|".join(ctx.exclude_patterns) or "-",
        "Fix Dates": ctx.fix_creation_dates,
        "Index Only": ctx.db_only,
        "Thumbnails": ctx.create_thumbnails,
        "Dry Run": ctx.dry_run,
    })

    stats = run_tidy(ctx, reporter)
    elapsed = (datetime.now() - ctx.start_time).total_seconds()
    reporter.print_stats(stats, elapsed)
    return EXIT_OK


def _library_dir(args: argparse.Namespace) -> Path:
    directory = args.directory
    if directory is None or not directory.expanduser().is_dir():
        raise ValidationError("The given directory does not exist or it is not a directory.")
    return directory.expanduser().resolve()


def _with_index_counts(counts: dict[str, int], store) -> dict[str, int]:
    """Append the number of indexed records per status."""
    counts = dict(counts)
    by_status = store.count_by_status()
    for status in RecordStatus:
        if status in by_status:
            counts[f"indexed_{status.value}"] = by_status[status]
    return counts


def cmd_rescan(args: argparse.Namespace, reporter: ProgressReporter) -> int:
    """Handle the rescan command."""
    from .services.app_context import create_resolver, open_library_index
    from .services.maintenance import rescan

    library = _library_dir(args)
    reporter.print_header(f"mediatidy rescan {library}")
    with open_library_index(library, dry_run=args.dry_run) as store:
        result = rescan(library, store, create_resolver())
        counts = _with_index_counts(result.summary(), store)

    reporter.print_summary("Rescan Complete", counts)
    if args.dry_run:
        reporter.info("DRY RUN: index not modified")
    return EXIT_OK


def cmd_fixdb(args: argparse.Namespace, reporter: ProgressReporter) -> int:
    """Handle the fixdb command."""
    from .services.app_context import open_library_index
    from .services.maintenance import fixdb

    library = _library_dir(args)
    with open_library_index(library, dry_run=args.dry_run) as store:
        result = fixdb(store)
        counts = _with_index_counts(result.summary(), store)

    reporter.print_summary("Index Repaired", counts)
    if args.dry_run:
        reporter.info("DRY RUN: index not modified")
    return EXIT_OK


COMMANDS = {
    "run": cmd_run,
    "rescan": cmd_rescan,
    "fixdb": cmd_fixdb,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    args.dry_run = args.global_dry_run or getattr(args, "dry_run", False)
    args.quiet = args.global_quiet or getattr(args, "quiet", False)

    setup_logging(verbose=args.verbose, quiet=args.quiet)

    # Create reporter
    if args.quiet:
        reporter = QuietProgressReporter()
    else:
        reporter = RichProgressReporter(verbose=args.verbose)

    # No command specified - show help
    if not args.command:
        parser.print_help()
        return EXIT_OK

    started = datetime.now()
    try:
        return COMMANDS[args.command](args, reporter)
    except KeyboardInterrupt:
        # Clean exit on Ctrl+C - no stack trace
        return EXIT_INTERRUPTED
    except ValidationError as e:
        reporter.error(str(e))
        return EXIT_INVALID
    except MediaTidyError as e:
        reporter.error(str(e))
        return EXIT_ERROR
    except Exception as e:
        reporter.error(f"Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return EXIT_ERROR
    finally:
        logger.debug("Took %s", datetime.now() - started)


if __name__ == "__main__":
    sys.exit(main())
