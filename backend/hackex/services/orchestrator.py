"""
Scan Orchestrator

Drives one scan through pending -> scanning -> {done, failed}:

1. claim the pending record (atomic, works across pods)
2. run runtime probes (url) then the static scanner (archive)
3. enrich findings, replace the stored findings of the scan
4. persist score + done in one write, then derive the verdict from the
   persisted score in a second write
5. mirror every status change to all public-token views

A failed attempt marks the scan failed. While attempts remain it is reset to
pending and handed back to the queue; the archive is kept until the final
attempt or success.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from hackex.core.config import settings
from hackex.core.exceptions import ScanFailure
from hackex.core.metrics import (
    findings_total,
    scan_retries_total,
    scans_finished_total,
    worker_job_duration_seconds,
    worker_jobs_processed_total,
)
from hackex.models.finding import ExplainedFinding, Finding
from hackex.models.finding_record import FindingRecord
from hackex.models.scan import Scan, ScanStatus
from hackex.repositories import FindingRepository, ScanRepository
from hackex.services.archive import ArchiveStorage, StaticScanner
from hackex.services.explanation import ExplanationService
from hackex.services.probes import RuntimeScanner
from hackex.services.scan_state import ScanStateStore, scan_state
from hackex.services.scoring import calculate_score, determine_verdict

logger = logging.getLogger(__name__)

Requeue = Callable[[str], Awaitable[None]]


class ScanOrchestrator:
    def __init__(
        self,
        scans: ScanRepository,
        findings: FindingRepository,
        state: ScanStateStore,
        runtime_scanner: RuntimeScanner,
        static_scanner: StaticScanner,
        explainer: ExplanationService,
        requeue: Optional[Requeue] = None,
        timeout_seconds: Optional[float] = None,
        max_attempts: Optional[int] = None,
    ):
        self.scans = scans
        self.findings = findings
        self.state = state
        self.runtime_scanner = runtime_scanner
        self.static_scanner = static_scanner
        self.explainer = explainer
        self.requeue = requeue
        self.timeout_seconds = timeout_seconds or settings.SCAN_TIMEOUT_SECONDS
        self.max_attempts = max_attempts or settings.SCAN_MAX_ATTEMPTS

    def is_final_attempt(self, scan: Scan) -> bool:
        return scan.retry_count + 1 >= self.max_attempts

    async def process(self, scan_id: str, worker_id: str) -> Optional[str]:
        """
        Run one attempt of a scan.

        Returns the status the scan ends up in (done, pending when re-queued,
        failed), or None if the scan could not be claimed.
        """
        scan = await self.scans.claim_pending_scan(scan_id, worker_id)
        if scan is None:
            logger.info(f"Scan {scan_id} already claimed or not found. Skipping.")
            return None

        await self.state.mirror_status(scan_id, ScanStatus.SCANNING.value)
        attempt = scan.retry_count + 1
        logger.info(f"Worker {worker_id} started scan {scan_id} (attempt {attempt}/{self.max_attempts})")

        start_time = time.time()
        try:
            await asyncio.wait_for(self._execute(scan), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            worker_jobs_processed_total.labels(status="timeout").inc()
            return await self._handle_failure(
                scan, ScanFailure(f"Scan timed out after {self.timeout_seconds} seconds")
            )
        except Exception as e:
            worker_jobs_processed_total.labels(status="failed").inc()
            failure = e if isinstance(e, ScanFailure) else ScanFailure(f"{type(e).__name__}: {e}")
            return await self._handle_failure(scan, failure)
        finally:
            worker_job_duration_seconds.observe(time.time() - start_time)

        worker_jobs_processed_total.labels(status="success").inc()
        logger.info(f"Scan {scan_id} finished in {time.time() - start_time:.1f}s")
        return await self._finish(scan)

    async def _execute(self, scan: Scan) -> None:
        final_attempt = self.is_final_attempt(scan)

        findings: List[Finding] = []
        if scan.input_url:
            findings.extend(await self.runtime_scanner.scan(scan.input_url))
        if scan.archive_ref:
            findings.extend(
                await self.static_scanner.scan(scan.archive_ref, release_archive=final_attempt)
            )

        enriched = await self.explainer.enrich(findings)
        await self._store_findings(scan.id, enriched)

        score = calculate_score(enriched)
        await self.scans.complete(scan.id, score)
        logger.info(f"Scan {scan.id}: {len(enriched)} findings, score {score}")

    async def _finish(self, scan: Scan) -> str:
        """
        Steps after the score and done status are durable. Nothing here may
        move the scan back to failed.
        """
        await self._apply_verdict(scan.id)
        if scan.archive_ref and not self.is_final_attempt(scan):
            await self.static_scanner.release(scan.archive_ref)

        scans_finished_total.labels(status=ScanStatus.DONE.value).inc()
        await self.state.mirror_status(scan.id, ScanStatus.DONE.value)
        return ScanStatus.DONE.value

    async def _apply_verdict(self, scan_id: str) -> None:
        """Derive the verdict from the persisted score (second write)."""
        try:
            persisted = await self.scans.get_by_id(scan_id)
            if persisted is None or persisted.score is None:
                logger.error(f"Scan {scan_id} has no persisted score, verdict not set")
                return
            verdict = determine_verdict(persisted.score)
            await self.scans.set_verdict(scan_id, verdict.value)
            logger.info(f"Scan {scan_id}: score {persisted.score}, {verdict.value}")
        except Exception as e:
            # Left null until the next verdict recompute
            logger.error(f"Failed to set verdict of scan {scan_id}: {e}")

    async def _store_findings(self, scan_id: str, enriched: List[ExplainedFinding]) -> None:
        records = [FindingRecord(scan_id=scan_id, **f.model_dump()) for f in enriched]
        await self.findings.replace_for_scan(scan_id, records)
        for record in records:
            findings_total.labels(type=record.type, severity=record.severity).inc()

    async def _handle_failure(self, scan: Scan, failure: ScanFailure) -> str:
        attempt = scan.retry_count + 1
        logger.error(f"Scan {scan.id} attempt {attempt}/{self.max_attempts} failed: {failure}")

        if not await self.scans.mark_failed(
            scan.id, str(failure), expected_status=ScanStatus.SCANNING.value
        ):
            return await self._resolve_lost_failure(scan)
        await self.state.mirror_status(scan.id, ScanStatus.FAILED.value)

        if failure.retryable and not self.is_final_attempt(scan):
            if await self.retry(scan.id, expected_status=ScanStatus.FAILED.value):
                return ScanStatus.PENDING.value

        await self._finalize_failure(scan)
        return ScanStatus.FAILED.value

    async def _resolve_lost_failure(self, scan: Scan) -> str:
        """The scan left scanning before the failure could be recorded."""
        current = await self.scans.get_by_id(scan.id)
        if current is None:
            logger.warning(f"Scan {scan.id} vanished while its attempt failed")
            return ScanStatus.FAILED.value
        if current.status == ScanStatus.DONE.value:
            logger.warning(f"Scan {scan.id} failed after completion, keeping it done")
            return await self._finish(scan)
        logger.warning(f"Scan {scan.id} is already {current.status}, failure not recorded")
        return current.status

    async def retry(self, scan_id: str, expected_status: str) -> bool:
        """Reset a scan to pending, mirror it and put it back on the queue."""
        if not await self.scans.reset_for_retry(scan_id, expected_status=expected_status):
            return False
        scan_retries_total.inc()
        await self.state.mirror_status(scan_id, ScanStatus.PENDING.value)
        if self.requeue is not None:
            await self.requeue(scan_id)
        logger.info(f"Scan {scan_id} re-queued for another attempt")
        return True

    async def _finalize_failure(self, scan: Scan) -> None:
        scans_finished_total.labels(status=ScanStatus.FAILED.value).inc()
        if scan.archive_ref:
            await self.static_scanner.release(scan.archive_ref)
        logger.warning(f"Scan {scan.id} failed permanently after {scan.retry_count + 1} attempts")

    async def reap_stuck(self, scan: Scan) -> str:
        """
        Deal with a scan stuck in scanning (its worker died or hung).

        Re-queues it while the retry budget lasts, otherwise marks it failed.
        """
        if not self.is_final_attempt(scan):
            if await self.retry(scan.id, expected_status=ScanStatus.SCANNING.value):
                return ScanStatus.PENDING.value

        if not await self.scans.mark_failed(
            scan.id, "Scan exceeded its time budget", expected_status=ScanStatus.SCANNING.value
        ):
            # Finished or reset by someone else in the meantime
            return scan.status
        await self.state.mirror_status(scan.id, ScanStatus.FAILED.value)
        await self._finalize_failure(scan)
        return ScanStatus.FAILED.value


def build_orchestrator(
    db: AsyncIOMotorDatabase, requeue: Optional[Requeue] = None
) -> ScanOrchestrator:
    """Wire an orchestrator with the production collaborators."""
    return ScanOrchestrator(
        scans=ScanRepository(db),
        findings=FindingRepository(db),
        state=scan_state,
        runtime_scanner=RuntimeScanner(),
        static_scanner=StaticScanner(ArchiveStorage(db)),
        explainer=ExplanationService(),
        requeue=requeue,
    )
