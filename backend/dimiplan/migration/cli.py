"""
Encrypt legacy plaintext tables in place.

Usage:
    python -m dimiplan.migration --dry-run   # report what would change
    python -m dimiplan.migration --apply     # rewrite the tables (back up first!)

Exits 0 when every table migrated cleanly, 1 on a self-test failure or any
row-level error.
"""

import argparse
import asyncio
import logging
import sys

from dimiplan.config import get_settings
from dimiplan.crypto import build_envelope
from dimiplan.db.session import build_engine, build_sessionmaker
from dimiplan.errors import ConfigMissingError, EncryptionError
from dimiplan.migration.engine import MigrationEngine, MigrationReport

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m dimiplan.migration",
        description="Hash owner columns and encrypt payload columns of legacy rows",
    )
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--dry-run", action="store_true", help="Scan and count without writing")
    mode.add_argument("--apply", action="store_true", help="Rewrite legacy rows")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def print_report(report: MigrationReport) -> None:
    print(f"Encryption migration ({'dry run' if report.dry_run else 'apply'})")
    print("=" * 50)
    for table in report.tables:
        status = "ok" if table.ok else "ROLLED BACK"
        print(
            f"  {table.table:<12} scanned={table.scanned} migrated={table.migrated} "
            f"already_done={table.already_done} errored={table.errored} [{status}]"
        )
    totals = report.totals
    print()
    print(
        f"  total        scanned={totals['scanned']} migrated={totals['migrated']} "
        f"already_done={totals['already_done']} errored={totals['errored']}"
    )


async def run(dry_run: bool) -> MigrationReport:
    settings = get_settings()
    envelope = build_envelope(settings)
    engine = build_engine(settings)
    try:
        return await MigrationEngine(envelope).run(build_sessionmaker(engine), dry_run=dry_run)
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        report = asyncio.run(run(dry_run=not args.apply))
    except ConfigMissingError as e:
        print(f"Configuration error: {e}")
        return 1
    except EncryptionError as e:
        print(f"Encryption self-test failed: {e}")
        return 1

    print_report(report)
    return 0 if report.ok else 1


if __name__ == "__main__":
    sys.exit(main())
