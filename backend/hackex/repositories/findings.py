"""
Finding Repository

Centralizes all database operations for findings.
"""

from typing import List

from hackex.core.constants import sort_by_severity
from hackex.models.finding_record import FindingRecord
from hackex.repositories.base import BaseRepository


class FindingRepository(BaseRepository[FindingRecord]):
    """Repository for finding database operations."""

    collection_name = "findings"
    model_class = FindingRecord

    async def find_by_scan(self, scan_id: str, limit: int = 1000) -> List[FindingRecord]:
        """Find findings for a scan, most severe first."""
        records = await self.find_many({"scan_id": scan_id}, limit=limit, sort_by="created_at")
        return sort_by_severity(records)

    async def replace_for_scan(self, scan_id: str, records: List[FindingRecord]) -> int:
        """
        Store the findings of one scan pass.

        Findings of an earlier failed attempt are removed first so a retried
        scan never ends up with duplicates.
        """
        await self.delete_by_scan(scan_id)
        return await self.create_many(records)

    async def delete_by_scan(self, scan_id: str) -> int:
        """Delete all findings for a scan."""
        return await self.delete_many({"scan_id": scan_id})

    async def delete_by_scans(self, scan_ids: List[str]) -> int:
        if not scan_ids:
            return 0
        return await self.delete_many({"scan_id": {"$in": scan_ids}})

    async def count_by_scan(self, scan_id: str) -> int:
        """Count findings for a scan."""
        return await self.count({"scan_id": scan_id})

