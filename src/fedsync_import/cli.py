#!/usr/bin/env python3
"""Command-line interface for the FedSync importer.

Commands:
  - fedsync-import import   : Import a FedSync data directory into the content store
  - fedsync-import validate : Check the layout of a data directory (no store access)
  - fedsync-import status   : Print the effective settings

Typical usage:
  fedsync-import import data/fedsync --dry-run
  fedsync-import import data/fedsync --events --concurrency 10
  fedsync-import validate data/fedsync
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from fedsync_import.configs.settings import ImportSettings, get_settings
from fedsync_import.errors import FedSyncImportError
from fedsync_import.ingestion.data_validator import validate_data_structure
from fedsync_import.ingestion.options import ImportOptions, resolve_phase_flags
from fedsync_import.ingestion.orchestrator import run_import
from fedsync_import.ingestion.store import ContentStore, InMemoryContentStore, RestContentStore
from fedsync_import.monitoring.error_aggregator import ErrorAggregator
from fedsync_import.monitoring.logging import LoggingOptions, setup_import_logger


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="fedsync-import", description="FedSync listing importer")
    p.add_argument("--version", action="store_true", help="Print version and exit")
    sub = p.add_subparsers(dest="cmd")

    # import
    pi = sub.add_parser("import", help="Import a FedSync data directory")
    pi.add_argument("path", nargs="?", default=None, help="Data directory (default: settings)")
    pi.add_argument("--categories", action="store_true", help="Import only categories")
    pi.add_argument("--events", action="store_true", help="Import only events")
    pi.add_argument("--profiles", action="store_true", help="Import only profiles")
    pi.add_argument("--skip-categories", action="store_true", help="Skip the category phase")
    pi.add_argument("--skip-events", action="store_true", help="Skip the event phase")
    pi.add_argument("--skip-profiles", action="store_true", help="Skip the profile phase")
    pi.add_argument("--batch-size", type=int, default=None, help="Items per batch (default 50)")
    pi.add_argument(
        "--concurrency", type=int, default=None, help="Max in-flight items (default 5)"
    )
    pi.add_argument(
        "--dry-run",
        action="store_true",
        help="Read, transform and validate only; never write to the store",
    )
    pi.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    pi.add_argument("--log-file", default=None, help="Also write logs to this file (default: LOG_FILE_PATH)")
    pi.add_argument("--json-logs", action="store_true", help="Emit JSON logs")
    pi.add_argument("--error-report", default=None, help="Write the error report here")
    pi.add_argument(
        "--store-url",
        default=None,
        help="Content store base URL (dry runs use an in-memory store unless set)",
    )

    # validate
    pv = sub.add_parser("validate", help="Check a data directory")
    pv.add_argument("path", nargs="?", default=None, help="Data directory (default: settings)")
    pv.add_argument("--sample-size", type=int, default=10, help="JSON files parsed per directory")
    pv.add_argument("--verbose", "-v", action="store_true", help="Print file counts as JSON")

    # status
    sub.add_parser("status", help="Print effective settings")

    return p.parse_args(argv)


def _build_store(args: argparse.Namespace, settings: ImportSettings) -> ContentStore:
    if args.store_url:
        settings = settings.model_copy(update={"STORE_URL": args.store_url})
    elif args.dry_run:
        return InMemoryContentStore()
    return RestContentStore.from_settings(settings)


def _cmd_import(args: argparse.Namespace, settings: ImportSettings) -> int:
    setup_import_logger(
        LoggingOptions(
            level=args.log_level or settings.LOG_LEVEL,
            json_logs=bool(args.json_logs or settings.JSON_LOGS),
            log_file=Path(args.log_file) if args.log_file else settings.LOG_FILE_PATH,
        )
    )

    flags = resolve_phase_flags(
        categories=args.categories,
        events=args.events,
        profiles=args.profiles,
        skip_categories=args.skip_categories,
        skip_events=args.skip_events,
        skip_profiles=args.skip_profiles,
    )
    options = ImportOptions.from_settings(
        settings,
        batch_size=args.batch_size,
        concurrency=args.concurrency,
        dry_run=args.dry_run,
        error_report_path=args.error_report,
        **flags,
    )

    data_path = Path(args.path) if args.path else settings.DATA_PATH
    store = _build_store(args, settings)
    errors = ErrorAggregator()
    stats = asyncio.run(run_import(store, data_path, options=options, errors=errors))

    if args.dry_run:
        print("Dry run complete. No records were written.")
    print(
        f"Processed {stats.total_processed}, imported {stats.total_imported}, "
        f"errors {stats.total_errors}"
    )
    return 0


def _cmd_validate(args: argparse.Namespace, settings: ImportSettings) -> int:
    data_path = Path(args.path) if args.path else settings.DATA_PATH
    report = validate_data_structure(data_path, sample_size=args.sample_size)

    for warning in report.warnings:
        print(f"  - [WARNING] {warning}")
    if report.valid:
        print(f"Data directory is VALID: {data_path}")
        if args.verbose:
            print(json.dumps(report.file_counts, indent=2))
        return 0

    print("Data directory is INVALID. Issues found:", file=sys.stderr)
    for error in report.errors:
        print(f"  - [ERROR] {error}", file=sys.stderr)
    return 2


def _cmd_status(settings: ImportSettings) -> int:
    dump = settings.model_dump(mode="json")
    if settings.STORE_API_KEY is not None:
        dump["STORE_API_KEY"] = "**********"
    print(json.dumps(dump, indent=2, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the CLI with the given arguments."""
    try:
        return _main_impl(argv)
    except FedSyncImportError as e:
        print(f"Error [{e.code}]: {e.message}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _main_impl(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    if args.version:
        from fedsync_import import __version__

        print(f"fedsync-import version {__version__}")
        return 0

    if not args.cmd:
        print("Error: Command required. Use --help for usage info.", file=sys.stderr)
        return 1

    settings = get_settings()

    if args.cmd == "import":
        return _cmd_import(args, settings)
    if args.cmd == "validate":
        return _cmd_validate(args, settings)
    if args.cmd == "status":
        return _cmd_status(settings)

    print(f"Unknown command: {args.cmd}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
