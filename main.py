#!/usr/bin/env python3
"""Device-Lending Ledger CLI.

This module provides a command-line interface for importing ledger
spreadsheets into PostgreSQL and for inspecting a device's usage history.

Architecture:
    - OpenpyxlRowSource reads the .xlsx/.csv file
    - RunImportUseCase reconciles the rows against PostgresLedgerStore
    - GetUsageHistoryUseCase lists a device's previous holders

Environment Variables:
    - DATABASE_URL: PostgreSQL connection string (required)
    - DB_POOL_MIN_SIZE / DB_POOL_MAX_SIZE: Pool bounds (default 2 / 10)
    - DB_COMMAND_TIMEOUT: Query timeout in seconds (default 60)
    - LOG_LEVEL: Logging level (default INFO)

Example Usage:
    $ python main.py import iphones iphones.xlsx
    $ python main.py import routers routers.csv --commit-mode all_or_nothing
    $ python main.py history iphones 6f1c...-...
"""
import argparse
import asyncio
import dataclasses
import logging
import os
import sys
from datetime import datetime, timezone

from dotenv import load_dotenv

load_dotenv()

# Local imports
from src.ledger.api import LedgerError, close_pool, create_pool
from src.ledger.importing.adapters import OpenpyxlRowSource, PostgresLedgerStore
from src.ledger.importing.domain import CommitMode, ImportReport, RecordKind, get_policy
from src.ledger.importing.use_cases import GetUsageHistoryUseCase, RunImportUseCase

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def setup_database():
    """Create database connection pool.

    Returns:
        asyncpg.Pool or None if database not configured
    """
    database_url = os.getenv("DATABASE_URL")

    if not database_url:
        print("[Main] DATABASE_URL is not set")
        return None

    try:
        pool = await create_pool(
            database_url,
            min_size=int(os.getenv("DB_POOL_MIN_SIZE", "2")),
            max_size=int(os.getenv("DB_POOL_MAX_SIZE", "10")),
            command_timeout=float(os.getenv("DB_COMMAND_TIMEOUT", "60")),
        )
    except LedgerError as e:
        print(f"[Main] Database connection failed: {e.message}")
        return None

    print("[Main] Connected to PostgreSQL")
    return pool


def print_report(report: ImportReport):
    """Print an import report the way the ledger screens summarize it."""
    print("\n" + "=" * 60)
    print(f"IMPORT {report.kind.value.upper()}")
    print("=" * 60)

    if report.aborted:
        print(f"Aborted: {report.abort_reason}")
        return

    print(f"Succeeded: {report.success_count}")
    print(f"Failed:    {report.error_count}")

    if report.violations:
        print("\n" + "-" * 60)
        for violation in report.violations:
            print(violation.message)


async def run_import(args: argparse.Namespace, db_pool) -> int:
    """Import one spreadsheet.

    Returns:
        Process exit code
    """
    kind = RecordKind(args.kind)
    policy = get_policy(kind)
    if args.commit_mode:
        policy = dataclasses.replace(policy, commit_mode=CommitMode(args.commit_mode))
    if args.header_row:
        policy = dataclasses.replace(
            policy,
            header_row=args.header_row,
            row_number_offset=args.header_row + 1,
        )

    try:
        with open(args.file, "rb") as f:
            content = f.read()
    except OSError as e:
        print(f"[Main] Cannot read {args.file}: {e}")
        return 1

    try:
        sheet = OpenpyxlRowSource().read(content, header_row=policy.header_row)
    except ValueError as e:
        print(f"[Main] {e}")
        return 1

    report = await RunImportUseCase(PostgresLedgerStore(db_pool)).execute(sheet, policy)
    print_report(report)
    return 1 if report.aborted else 0


async def run_history(args: argparse.Namespace, db_pool) -> int:
    """Print a device's usage history.

    Returns:
        Process exit code
    """
    history = await GetUsageHistoryUseCase(PostgresLedgerStore(db_pool)).execute(
        args.kind, args.device_id
    )

    if not history:
        print("No usage history")
        return 0

    print(f"{'End date':<12} {'Start date':<12} {'Employee':<12} {'Address'}")
    print("-" * 60)
    for entry in history:
        print(
            f"{entry.end_date:<12} {entry.start_date or '-':<12} "
            f"{entry.employee_code:<12} {entry.address_code or '-'}"
        )
    return 0


async def run(args: argparse.Namespace) -> int:
    """Main orchestration function.

    Args:
        args: Parsed command-line arguments
    """
    start_time = datetime.now(timezone.utc)
    print(f"[Main] Starting at {start_time.isoformat()}")

    db_pool = await setup_database()
    if db_pool is None:
        return 1

    try:
        if args.command == "import":
            code = await run_import(args, db_pool)
        else:
            code = await run_history(args, db_pool)
    except (LedgerError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        code = 1
    finally:
        await close_pool(db_pool)

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    print(f"\n[Main] Completed in {duration:.1f} seconds")
    return code


def main():
    kinds = [k.value for k in RecordKind]

    parser = argparse.ArgumentParser(
        description="Import device-lending ledger spreadsheets into PostgreSQL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py import tablets tablets.xlsx
  python main.py import addresses addresses.xlsx --header-row 1
  python main.py import iphones iphones.xlsx --commit-mode all_or_nothing
  python main.py history iphones 3b7e0c2a-6a8f-4d3e-9c1b-0f2e4d5a6b7c
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    import_parser = subparsers.add_parser("import", help="Import a spreadsheet")
    import_parser.add_argument("kind", choices=kinds, help="Ledger kind")
    import_parser.add_argument("file", help="Path to the .xlsx or .csv file")
    import_parser.add_argument(
        "--commit-mode",
        choices=[m.value for m in CommitMode],
        help="Override the kind's commit mode"
    )
    import_parser.add_argument(
        "--header-row",
        type=int,
        metavar="N",
        help="1-based row holding the headers (default depends on kind)"
    )

    history_parser = subparsers.add_parser("history", help="Show a device's usage history")
    history_parser.add_argument(
        "kind",
        choices=[k.value for k in RecordKind if k.is_device],
        help="Device kind"
    )
    history_parser.add_argument("device_id", help="Device id (UUID)")

    args = parser.parse_args()

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
