#!/usr/bin/env python3
"""
Maintenance commands for the HackEx scanner.

Commands:
    cleanup               Delete scans older than N hours (findings, archives and
                          token views included)
    recover               Issue a public token for an existing scan
    recalculate-verdicts  Re-derive every verdict from the stored score

Usage:
    python scripts/maintenance.py cleanup [--hours 24]
    python scripts/maintenance.py recover SCAN_ID [--token TOKEN]
    python scripts/maintenance.py recalculate-verdicts
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from hackex.core.cache import cache_service  # noqa: E402
from hackex.core.config import settings  # noqa: E402
from hackex.core.exceptions import NotFound  # noqa: E402
from hackex.db.mongodb import close_mongo_connection, connect_to_mongo, get_database  # noqa: E402
from hackex.services.scan_manager import ScanManager  # noqa: E402

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


async def run_command(args: argparse.Namespace) -> int:
    await connect_to_mongo()
    try:
        manager = ScanManager(await get_database())

        if args.command == "cleanup":
            result = await manager.purge_expired(args.hours)
            logger.info(
                f"Deleted {result.scans_deleted} scans and {result.archives_deleted} archives "
                f"older than {args.hours} hours"
            )
        elif args.command == "recover":
            try:
                token = await manager.recover(args.scan_id, token=args.token)
            except NotFound:
                logger.error(f"Scan {args.scan_id} does not exist")
                return 1
            print(token)
        elif args.command == "recalculate-verdicts":
            updated = await manager.recompute_verdicts()
            logger.info(f"Updated {updated} verdicts")
        return 0
    finally:
        await cache_service.close()
        await close_mongo_connection()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="HackEx scanner maintenance")
    subparsers = parser.add_subparsers(dest="command", required=True)

    cleanup = subparsers.add_parser("cleanup", help="Delete expired scans")
    cleanup.add_argument(
        "--hours",
        type=int,
        default=settings.RETENTION_HOURS,
        help=f"Age in hours after which scans are deleted (default: {settings.RETENTION_HOURS})",
    )

    recover = subparsers.add_parser("recover", help="Issue a public token for a scan")
    recover.add_argument("scan_id", help="Internal scan id")
    recover.add_argument("--token", help="Token string to reuse instead of a fresh one")

    subparsers.add_parser("recalculate-verdicts", help="Re-derive verdicts from scores")
    return parser


if __name__ == "__main__":
    args = build_parser().parse_args()
    sys.exit(asyncio.run(run_command(args)))
