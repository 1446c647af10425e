import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from hackex.core.config import settings
from hackex.core.worker import worker_manager
from hackex.db.mongodb import get_database
from hackex.repositories import ScanRepository
from hackex.services.orchestrator import ScanOrchestrator, build_orchestrator
from hackex.services.scan_manager import ScanManager

logger = logging.getLogger(__name__)

STUCK_CHECK_INTERVAL_SECONDS = 5 * 60
RETENTION_INTERVAL = timedelta(hours=1)
# Extra time on top of the attempt timeout before a scan counts as stuck
STUCK_GRACE_SECONDS = 60


async def recover_stuck_scans(orchestrator: Optional[ScanOrchestrator] = None) -> int:
    """
    Identifies scans that have been stuck in 'scanning' longer than an
    attempt may take and resets them to 'pending' or marks them as 'failed'.
    """
    logger.info("Running stuck scan recovery...")
    recovered = 0
    try:
        db = await get_database()
        if orchestrator is None:
            orchestrator = build_orchestrator(db, requeue=worker_manager.add_job)

        threshold = datetime.now(timezone.utc) - timedelta(
            seconds=settings.SCAN_TIMEOUT_SECONDS + STUCK_GRACE_SECONDS
        )
        for scan in await ScanRepository(db).find_stuck(threshold):
            status = await orchestrator.reap_stuck(scan)
            logger.warning(f"Scan {scan.id} was stuck in scanning, now {status}")
            recovered += 1
    except Exception as e:
        logger.error(f"Stuck scan recovery failed: {e}")
    return recovered


async def run_retention(hours: Optional[int] = None) -> None:
    """Deletes scans older than the retention age."""
    logger.info("Starting retention sweep...")
    try:
        db = await get_database()
        await ScanManager(db).purge_expired(hours)
    except Exception as e:
        logger.error(f"Retention sweep failed: {e}")


async def housekeeping_loop(orchestrator: Optional[ScanOrchestrator] = None):
    """
    Runs the housekeeping tasks.
    - Stuck scan recovery: Every 5 minutes
    - Retention sweep: Every hour
    """
    last_retention_run = datetime.min.replace(tzinfo=timezone.utc)

    while True:
        await recover_stuck_scans(orchestrator)

        if (datetime.now(timezone.utc) - last_retention_run) > RETENTION_INTERVAL:
            await run_retention()
            last_retention_run = datetime.now(timezone.utc)

        await asyncio.sleep(STUCK_CHECK_INTERVAL_SECONDS)
