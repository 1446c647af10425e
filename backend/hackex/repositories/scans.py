"""
Scan Repository

Centralizes all database operations for the durable scan records.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument

from hackex.models.scan import Scan, ScanStatus
from hackex.repositories.base import BaseRepository


class ScanRepository(BaseRepository[Scan]):
    """Repository for scan database operations."""

    collection_name = "scans"
    model_class = Scan

    async def claim_pending_scan(self, scan_id: str, worker_id: str) -> Optional[Scan]:
        """
        Atomically claim a pending scan for processing.

        Returns None when the scan is gone or another worker (possibly in
        another pod) already claimed it.
        """
        data = await self.collection.find_one_and_update(
            {"_id": scan_id, "status": ScanStatus.PENDING.value},
            {
                "$set": {
                    "status": ScanStatus.SCANNING.value,
                    "worker_id": worker_id,
                    "started_at": datetime.now(timezone.utc),
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(data)

    async def mark_failed(
        self, scan_id: str, error: str, expected_status: Optional[str] = None
    ) -> bool:
        """Move a scan to failed. With expected_status the write is conditional."""
        query: Dict[str, Any] = {"_id": scan_id}
        if expected_status:
            query["status"] = expected_status
        result = await self.collection.update_one(
            query,
            {
                "$set": {
                    "status": ScanStatus.FAILED.value,
                    "error": error,
                    "completed_at": datetime.now(timezone.utc),
                }
            },
        )
        return result.modified_count > 0

    async def reset_for_retry(self, scan_id: str, expected_status: str) -> bool:
        """Put a scan back to pending and consume one retry."""
        result = await self.collection.update_one(
            {"_id": scan_id, "status": expected_status},
            {
                "$set": {
                    "status": ScanStatus.PENDING.value,
                    "worker_id": None,
                    "started_at": None,
                    "completed_at": None,
                },
                "$inc": {"retry_count": 1},
            },
        )
        return result.modified_count > 0

    async def complete(self, scan_id: str, score: int) -> None:
        """Persist the score and the done status in one write."""
        await self.update_raw(
            scan_id,
            {
                "$set": {
                    "status": ScanStatus.DONE.value,
                    "score": score,
                    "error": None,
                    "completed_at": datetime.now(timezone.utc),
                }
            },
        )

    async def set_verdict(self, scan_id: str, verdict: str) -> int:
        return await self.update_raw(scan_id, {"$set": {"verdict": verdict}})

    async def get_pending_ids(self) -> List[str]:
        cursor = self.collection.find({"status": ScanStatus.PENDING.value}, {"_id": 1})
        return [str(doc["_id"]) async for doc in cursor]

    async def find_stuck(self, started_before: datetime) -> List[Scan]:
        """Scans still scanning although their attempt should have ended."""
        return await self.find_many(
            {
                "status": ScanStatus.SCANNING.value,
                "$or": [
                    {"started_at": {"$lt": started_before}},
                    {"started_at": None},
                ],
            },
            limit=1000,
        )

    async def find_created_before(self, cutoff: datetime, limit: int = 1000) -> List[Scan]:
        return await self.find_many({"created_at": {"$lt": cutoff}}, limit=limit)

    async def delete_by_ids(self, scan_ids: List[str]) -> int:
        if not scan_ids:
            return 0
        return await self.delete_many({"_id": {"$in": scan_ids}})

    async def find_recent(self, limit: int = 10) -> List[Scan]:
        return await self.find_many({}, limit=limit, sort_by="created_at", sort_order=-1)

    async def iterate_scored(self):
        """Iterate over scans that already carry a score."""
        async for scan in self.iterate({"score": {"$ne": None}}):
            yield scan

    async def get_verdict_counts(self) -> Dict[str, int]:
        """Get scan counts grouped by verdict (scans without verdict excluded)."""
        pipeline = [
            {"$match": {"verdict": {"$ne": None}}},
            {"$group": {"_id": "$verdict", "count": {"$sum": 1}}},
        ]
        results = await self.aggregate(pipeline)
        return {r["_id"]: r["count"] for r in results if r["_id"]}
