# main.py

"""Entry point for the plan_sync scheduled job."""

import argparse
import asyncio
import logging
import sys

from src.config.logging_config import setup_logging

logger = logging.getLogger("plan_sync.main")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="plan_sync",
        description=(
            "Sync the electricity plan catalog with Power to Choose. "
            "Applies updates and soft-deletes by default."
        ),
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        default=False,
        help="Compute the change set without touching the catalog.",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=["json", "table"],
        default="json",
        dest="output_format",
        help="Output format (default: json).",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Wall-clock budget for the run in seconds.",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for estimated data (reproducible fallback runs).",
    )
    parser.add_argument(
        "--db",
        default=None,
        dest="db_path",
        help="Catalog database path (default: data/catalog.db).",
    )
    parser.add_argument(
        "--import-catalog",
        default=None,
        dest="import_catalog",
        metavar="PATH",
        help="Import reviewed plans from a JSON file or directory.",
    )
    parser.add_argument(
        "--health",
        action="store_true",
        default=False,
        help="Run a connectivity health check on the plan source.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Echo INFO log lines to stderr as well as the run log.",
    )
    return parser


def _run_sync(args: argparse.Namespace) -> None:
    """Run one sync and exit with its status."""
    from src.cli.runner import run_sync

    exit_code = run_sync(
        auto_apply=not args.preview,
        output_format=args.output_format,
        timeout=args.timeout,
        seed=args.seed,
        db_path=args.db_path,
    )
    sys.exit(exit_code)


def _run_import_catalog(args: argparse.Namespace) -> None:
    """Import reviewed plans into the catalog."""
    from src.cli.runner import run_import_catalog

    exit_code = run_import_catalog(args.import_catalog, args.db_path)
    sys.exit(exit_code)


def _run_health_check() -> None:
    """Run source connectivity health check."""
    from src.cli.runner import run_health_check

    exit_code = asyncio.run(run_health_check())
    sys.exit(exit_code)


def main() -> None:
    """Route to the sync job, catalog import or health check."""
    args = _build_parser().parse_args()
    log_file = setup_logging(verbose=args.verbose)
    logger.info("plan_sync starting, log file: %s", log_file)

    if args.import_catalog:
        _run_import_catalog(args)
    elif args.health:
        _run_health_check()
    else:
        _run_sync(args)


if __name__ == "__main__":
    main()
