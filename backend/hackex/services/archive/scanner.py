import asyncio
import logging
import shutil
import uuid
from pathlib import Path
from typing import List, Optional

from hackex.core.config import settings
from hackex.core.exceptions import ExtractionFailure
from hackex.core.metrics import archive_extraction_failures_total
from hackex.models.finding import Finding
from hackex.services.archive.checks import STATIC_CHECKS
from hackex.services.archive.extraction import extract_archive
from hackex.services.archive.storage import ArchiveStorage

logger = logging.getLogger(__name__)


def list_files(root: Path) -> List[Path]:
    """Every regular file below root in stable path order."""
    return sorted(p for p in root.rglob("*") if p.is_file() and not p.is_symlink())


def run_static_checks(root: Path) -> List[Finding]:
    files = list_files(root)
    findings: List[Finding] = []
    for name, check in STATIC_CHECKS:
        results = check(root, files)
        if results:
            logger.debug(f"Static check {name} produced {len(results)} findings")
        findings.extend(results)
    return findings


def remove_scratch(scratch: Path) -> None:
    if not scratch.exists():
        return
    try:
        shutil.rmtree(scratch)
    except OSError as e:
        logger.error(f"Failed to remove scratch directory {scratch}: {e}")


def scan_extracted(data: bytes, scratch: Path) -> List[Finding]:
    """
    Extract data into scratch, run the static checks and remove scratch.

    Runs in one worker thread so the removal always happens after the last
    write of the extraction, even when the awaiting attempt was cancelled.
    """
    try:
        extract_archive(data, scratch)
        return run_static_checks(scratch)
    finally:
        remove_scratch(scratch)


class StaticScanner:
    """
    Extracts a stored archive into a private scratch directory, runs the
    static checks and removes the scratch directory again.

    The scratch directory is always removed. The stored archive is removed
    too unless release_archive is False, which lets a retried attempt read it
    again. Cleanup errors are logged and never replace the scan result.
    """

    def __init__(self, storage: ArchiveStorage, scratch_root: Optional[str] = None):
        self.storage = storage
        self.scratch_root = Path(scratch_root or settings.SCRATCH_PATH)

    async def scan(self, archive_ref: str, release_archive: bool = True) -> List[Finding]:
        try:
            data = await self.storage.read(archive_ref)
            if data is None:
                archive_extraction_failures_total.inc()
                raise ExtractionFailure(f"Archive {archive_ref} not found")

            scratch = self.scratch_root / f"scan_{uuid.uuid4().hex}"
            try:
                findings = await asyncio.to_thread(scan_extracted, data, scratch)
            except ExtractionFailure:
                archive_extraction_failures_total.inc()
                raise
        finally:
            if release_archive:
                await self.release(archive_ref)

        logger.info(f"Static scan of archive {archive_ref} produced {len(findings)} findings")
        return findings

    async def release(self, archive_ref: str) -> bool:
        """Delete the stored archive. Failures are logged, never raised."""
        try:
            return await self.storage.delete(archive_ref)
        except Exception as e:
            logger.error(f"Failed to delete archive {archive_ref}: {e}")
            return False
