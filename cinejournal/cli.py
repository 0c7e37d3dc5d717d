"""Command-line interface for the CineJournal backend.

Commands:
    serve             Run the API server
    cleanup           Run the trending retention sweeps once and exit
    init-db           Create all tables (development; production uses Alembic)
    generate-api-key  Print a new service API key and its hash
"""

import argparse
import asyncio
import sys
from typing import Optional

from cinejournal.auth.api_key import generate_api_key, hash_key
from cinejournal.config import get_settings
from cinejournal.db.models import create_tables, dispose_engine, init_engine
from cinejournal.observability.logging import get_logger, setup_logging
from cinejournal.retention.manager import RetentionRunResult, SweepResult
from cinejournal.retention.scheduler import run_retention_sweep

logger = get_logger(__name__)


def _format_sweep(result: SweepResult) -> str:
    line = (
        f"  {result.sweep:<9} found={result.total_found} deleted={result.deleted_count} "
        f"already_removed={result.already_removed} failed={result.failed_count}"
    )
    for failure in result.failures:
        line += f"\n    ! {failure.entry_id}: {failure.error}"
    return line


def format_summary(run: RetentionRunResult) -> str:
    """Human readable summary of a retention run."""
    return "\n".join([
        f"Trending cleanup finished: {run.total_deleted} deleted, {run.total_failed} failed",
        _format_sweep(run.expired),
        _format_sweep(run.inactive),
    ])


async def run_cleanup() -> int:
    """Run both retention sweeps against the configured database.

    Returns:
        Process exit code: 1 if the store could not be queried
    """
    settings = get_settings()
    init_engine(str(settings.database.url), echo=settings.database.echo)
    try:
        run = await run_retention_sweep(settings.retention, trigger="manual")
    finally:
        await dispose_engine()

    if run is None:
        print("Trending cleanup failed: the store could not be queried", file=sys.stderr)
        return 1

    print(format_summary(run))
    return 0


async def run_init_db() -> int:
    settings = get_settings()
    engine = init_engine(str(settings.database.url), echo=settings.database.echo)
    try:
        await create_tables(engine)
    finally:
        await dispose_engine()

    logger.info("database_tables_created")
    print("Tables created successfully")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cinejournal", description="CineJournal backend")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Run the API server")
    subparsers.add_parser("cleanup", help="Delete expired and inactive trending entries once")
    subparsers.add_parser("init-db", help="Create database tables")

    keygen = subparsers.add_parser("generate-api-key", help="Generate a service API key")
    keygen.add_argument("--prefix", default="cj", help="Key prefix")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    """Console script entry point."""
    args = build_parser().parse_args(argv)
    settings = get_settings()

    if args.command == "serve":
        from cinejournal.main import cli

        cli()
        return

    if args.command == "generate-api-key":
        key = generate_api_key(prefix=args.prefix)
        print(f"API key: {key}")
        print(f"SHA-256: {hash_key(key)}")
        print("Add the key to SECURITY_SERVICE_API_KEYS to enable it.")
        return

    setup_logging(
        json_format=settings.observability.log_format == "json",
        log_level=settings.observability.log_level,
    )

    if args.command == "cleanup":
        sys.exit(asyncio.run(run_cleanup()))

    sys.exit(asyncio.run(run_init_db()))


if __name__ == "__main__":
    main()
