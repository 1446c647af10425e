"""
ScanManager - Centralized service for scan lifecycle management.

This service handles:
- Accepting submissions and issuing public tokens
- Resolving tokens to status and results
- Re-issuing tokens for existing scans
- Re-deriving verdicts from stored scores
- The retention sweep and the internal dashboard
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase

from hackex.core.config import settings
from hackex.core.constants import SEVERITY_ORDER
from hackex.core.exceptions import InvalidSubmission, NotFound
from hackex.core.metrics import scans_submitted_total
from hackex.models.scan import Scan, ScanStatus, Verdict
from hackex.repositories import FindingRepository, ScanRepository
from hackex.schemas.scan import (
    DashboardResponse,
    DashboardStats,
    FindingResponse,
    PurgeResult,
    RecentScan,
    ScanResultsResponse,
    ScanStatusResponse,
    ScanSummary,
)
from hackex.services.archive import ArchiveStorage
from hackex.services.probes import normalize_url
from hackex.services.scan_state import ScanStateStore, scan_state
from hackex.services.scoring import determine_verdict

logger = logging.getLogger(__name__)

Enqueue = Callable[[str], Awaitable[None]]

PURGE_BATCH_SIZE = 500


def _submission_kind(url: Optional[str], archive_ref: Optional[str]) -> str:
    if url and archive_ref:
        return "both"
    return "url" if url else "archive"


class ScanManager:
    """
    Manages the lifecycle of scans.

    Usage:
        manager = ScanManager(db, enqueue=worker_manager.add_job)
        token = await manager.submit(url="https://example.com")
        status = await manager.get_status(token)
    """

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        state: Optional[ScanStateStore] = None,
        storage: Optional[ArchiveStorage] = None,
        enqueue: Optional[Enqueue] = None,
        scans: Optional[ScanRepository] = None,
        findings: Optional[FindingRepository] = None,
    ):
        self.db = db
        self.state = state if state is not None else scan_state
        self.storage = storage if storage is not None else ArchiveStorage(db)
        self.enqueue = enqueue
        self.scans = scans if scans is not None else ScanRepository(db)
        self.findings = findings if findings is not None else FindingRepository(db)

    async def submit(
        self,
        url: Optional[str] = None,
        archive_ref: Optional[str] = None,
        archive_name: Optional[str] = None,
    ) -> str:
        """Create a pending scan, issue its first token and queue it."""
        url = url.strip() if url else None
        if not url and not archive_ref:
            raise InvalidSubmission("Provide a URL, an archive, or both")

        scan = Scan(
            input_url=normalize_url(url) if url else None,
            archive_ref=archive_ref,
            archive_name=archive_name,
        )
        await self.scans.create(scan)
        token = await self.state.issue_token(scan.id, ScanStatus.PENDING.value)

        if self.enqueue is not None:
            await self.enqueue(scan.id)
        scans_submitted_total.labels(kind=_submission_kind(url, archive_ref)).inc()
        logger.info(f"Scan {scan.id} submitted ({_submission_kind(url, archive_ref)})")
        return token

    async def _resolve_scan(self, token: str) -> Scan:
        view = await self.state.resolve(token)
        if view is None:
            raise NotFound(NotFound.EXPIRED, token=token)
        scan = await self.scans.get_by_id(view["scan_id"])
        if scan is None:
            raise NotFound(NotFound.MISSING_RECORD, token=token)
        return scan

    async def get_status(self, token: str) -> ScanStatusResponse:
        """Status for polling. Read from the durable record, not the view."""
        scan = await self._resolve_scan(token)
        findings_count = (
            await self.findings.count_by_scan(scan.id)
            if scan.status == ScanStatus.DONE.value
            else 0
        )
        return ScanStatusResponse(
            status=scan.status,
            score=scan.score,
            verdict=scan.verdict,
            is_complete=scan.is_complete,
            findings_count=findings_count,
        )

    async def get_results(self, token: str) -> ScanResultsResponse:
        scan = await self._resolve_scan(token)
        records = await self.findings.find_by_scan(scan.id)

        severity_counts: Dict[str, int] = {severity: 0 for severity in SEVERITY_ORDER}
        for record in records:
            severity_counts[record.severity] = severity_counts.get(record.severity, 0) + 1

        return ScanResultsResponse(
            scan=ScanSummary(
                input_url=scan.input_url,
                archive_name=scan.archive_name,
                status=scan.status,
                score=scan.score,
                verdict=scan.verdict,
                created_at=scan.created_at,
                completed_at=scan.completed_at,
            ),
            findings=[
                FindingResponse(**record.model_dump(exclude={"id", "scan_id", "created_at"}))
                for record in records
            ],
            severity_counts=severity_counts,
        )

    async def recover(self, scan_id: str, token: Optional[str] = None) -> str:
        """Issue a (possibly caller chosen) token for an existing scan."""
        scan = await self.scans.get_by_id(scan_id)
        if scan is None:
            raise NotFound(NotFound.MISSING_RECORD)
        token = await self.state.issue_token(scan.id, scan.status, token=token)
        logger.info(f"Issued recovery token for scan {scan_id}")
        return token

    async def recompute_verdicts(self) -> int:
        """Re-derive the verdict of every scored scan. Returns how many changed."""
        updated = 0
        async for scan in self.scans.iterate_scored():
            verdict = determine_verdict(scan.score).value
            if verdict != scan.verdict:
                await self.scans.set_verdict(scan.id, verdict)
                updated += 1
        logger.info(f"Recomputed verdicts, {updated} changed")
        return updated

    async def purge_expired(self, hours: Optional[int] = None) -> PurgeResult:
        """
        Delete scans older than the retention age together with their
        findings, any archive still stored and all token views.
        """
        hours = hours if hours is not None else settings.RETENTION_HOURS
        cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
        result = PurgeResult()

        while True:
            batch = await self.scans.find_created_before(cutoff, limit=PURGE_BATCH_SIZE)
            if not batch:
                break
            scans_deleted, archives_deleted = await self._purge_batch(batch)
            result.scans_deleted += scans_deleted
            result.archives_deleted += archives_deleted
            if len(batch) < PURGE_BATCH_SIZE:
                break

        logger.info(
            f"Retention sweep ({hours}h): deleted {result.scans_deleted} scans "
            f"and {result.archives_deleted} archives"
        )
        return result

    async def _purge_batch(self, batch: List[Scan]) -> Tuple[int, int]:
        archives_deleted = 0
        for scan in batch:
            if scan.archive_ref and await self.storage.delete(scan.archive_ref):
                archives_deleted += 1
            await self.state.revoke(scan.id)

        scan_ids = [scan.id for scan in batch]
        await self.findings.delete_by_scans(scan_ids)
        scans_deleted = await self.scans.delete_by_ids(scan_ids)
        return scans_deleted, archives_deleted

    async def dashboard(self) -> DashboardResponse:
        total = await self.scans.count()
        verdicts = await self.scans.get_verdict_counts()
        recent = await self.scans.find_recent(limit=10)
        return DashboardResponse(
            stats=DashboardStats(
                total=total,
                safe=verdicts.get(Verdict.SAFE.value, 0),
                risky=verdicts.get(Verdict.RISKY.value, 0),
                critical=verdicts.get(Verdict.CRITICAL.value, 0),
            ),
            recent=[
                RecentScan(
                    id=scan.id,
                    input_url=scan.input_url,
                    archive_name=scan.archive_name,
                    status=scan.status,
                    score=scan.score,
                    verdict=scan.verdict,
                    created_at=scan.created_at,
                )
                for scan in recent
            ],
        )
