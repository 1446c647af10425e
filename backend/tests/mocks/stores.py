"""In-memory stand-ins for Redis, GridFS and the repositories."""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set

from hackex.core.constants import sort_by_severity
from hackex.models.finding_record import FindingRecord
from hackex.models.scan import Scan, ScanStatus


class FakeCache:
    """Dict backed replacement for CacheService. expire() simulates a TTL running out."""

    def __init__(self):
        self.values: Dict[str, Any] = {}
        self.sets: Dict[str, Set[str]] = {}
        self.ttls: Dict[str, Optional[int]] = {}

    def expire(self, key: str) -> None:
        self.values.pop(key, None)
        self.ttls.pop(key, None)

    async def get(self, key: str) -> Optional[Any]:
        return self.values.get(key)

    async def set(self, key, value, ttl_seconds=None, only_if_exists=False) -> bool:
        if only_if_exists:
            if key not in self.values:
                return False
            self.values[key] = value
            self.ttls[key] = ttl_seconds
            return True
        self.values[key] = value
        self.ttls[key] = ttl_seconds
        return True

    async def delete(self, *keys: str) -> bool:
        for key in keys:
            self.values.pop(key, None)
            self.sets.pop(key, None)
        return bool(keys)

    async def members(self, key: str) -> Set[str]:
        return set(self.sets.get(key, set()))

    async def set_and_index(self, key, value, index_key, member, ttl_seconds=None) -> bool:
        self.values[key] = value
        self.ttls[key] = ttl_seconds
        self.sets.setdefault(index_key, set()).add(member)
        self.ttls[index_key] = ttl_seconds
        return True

    async def refresh_ttl(self, key: str, ttl_seconds=None) -> bool:
        if key not in self.values and key not in self.sets:
            return False
        self.ttls[key] = ttl_seconds
        return True

    async def remove_from_index(self, index_key: str, members: Iterable[str]) -> bool:
        self.sets.get(index_key, set()).difference_update(members)
        return True


class InMemoryArchiveStorage:
    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self._next = 0

    async def store(self, filename: str, data: bytes) -> str:
        self._next += 1
        ref = f"archive-{self._next}"
        self.blobs[ref] = data
        return ref

    async def read(self, ref: str) -> Optional[bytes]:
        return self.blobs.get(ref)

    async def delete(self, ref: str) -> bool:
        return self.blobs.pop(ref, None) is not None

    async def exists(self, ref: str) -> bool:
        return ref in self.blobs


class InMemoryScanRepository:
    """Implements the ScanRepository methods the services rely on."""

    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}

    def _load(self, scan_id: str) -> Optional[Scan]:
        doc = self.docs.get(scan_id)
        return Scan(**doc) if doc else None

    def _update(self, scan_id: str, **fields) -> None:
        self.docs[scan_id].update(fields)

    async def create(self, scan: Scan) -> Scan:
        self.docs[scan.id] = scan.model_dump(by_alias=True)
        return scan

    async def get_by_id(self, scan_id: str) -> Optional[Scan]:
        return self._load(scan_id)

    async def count(self, query=None) -> int:
        return len(self.docs)

    async def claim_pending_scan(self, scan_id: str, worker_id: str) -> Optional[Scan]:
        doc = self.docs.get(scan_id)
        if not doc or doc["status"] != ScanStatus.PENDING.value:
            return None
        self._update(
            scan_id,
            status=ScanStatus.SCANNING.value,
            worker_id=worker_id,
            started_at=datetime.now(timezone.utc),
        )
        return self._load(scan_id)

    async def mark_failed(self, scan_id, error, expected_status=None) -> bool:
        doc = self.docs.get(scan_id)
        if not doc or (expected_status and doc["status"] != expected_status):
            return False
        self._update(
            scan_id,
            status=ScanStatus.FAILED.value,
            error=error,
            completed_at=datetime.now(timezone.utc),
        )
        return True

    async def reset_for_retry(self, scan_id, expected_status) -> bool:
        doc = self.docs.get(scan_id)
        if not doc or doc["status"] != expected_status:
            return False
        self._update(
            scan_id,
            status=ScanStatus.PENDING.value,
            worker_id=None,
            started_at=None,
            completed_at=None,
            retry_count=doc["retry_count"] + 1,
        )
        return True

    async def complete(self, scan_id, score) -> None:
        self._update(
            scan_id,
            status=ScanStatus.DONE.value,
            score=score,
            error=None,
            completed_at=datetime.now(timezone.utc),
        )

    async def set_verdict(self, scan_id, verdict) -> int:
        self._update(scan_id, verdict=verdict)
        return 1

    async def get_pending_ids(self) -> List[str]:
        return [i for i, d in self.docs.items() if d["status"] == ScanStatus.PENDING.value]

    async def find_stuck(self, started_before) -> List[Scan]:
        return [
            self._load(i)
            for i, d in self.docs.items()
            if d["status"] == ScanStatus.SCANNING.value
            and (d["started_at"] is None or d["started_at"] < started_before)
        ]

    async def find_created_before(self, cutoff, limit=1000) -> List[Scan]:
        matches = [self._load(i) for i, d in self.docs.items() if d["created_at"] < cutoff]
        return matches[:limit]

    async def delete_by_ids(self, scan_ids) -> int:
        deleted = 0
        for scan_id in scan_ids:
            if self.docs.pop(scan_id, None) is not None:
                deleted += 1
        return deleted

    async def find_recent(self, limit=10) -> List[Scan]:
        docs = sorted(self.docs.values(), key=lambda d: d["created_at"], reverse=True)
        return [Scan(**d) for d in docs[:limit]]

    async def iterate_scored(self):
        for scan_id, doc in list(self.docs.items()):
            if doc["score"] is not None:
                yield self._load(scan_id)

    async def get_verdict_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for doc in self.docs.values():
            if doc["verdict"]:
                counts[doc["verdict"]] = counts.get(doc["verdict"], 0) + 1
        return counts


class InMemoryFindingRepository:
    def __init__(self):
        self.records: List[FindingRecord] = []

    async def replace_for_scan(self, scan_id: str, records: List[FindingRecord]) -> int:
        await self.delete_by_scan(scan_id)
        self.records.extend(records)
        return len(records)

    async def find_by_scan(self, scan_id: str, limit: int = 1000) -> List[FindingRecord]:
        return sort_by_severity([r for r in self.records if r.scan_id == scan_id])[:limit]

    async def count_by_scan(self, scan_id: str) -> int:
        return len([r for r in self.records if r.scan_id == scan_id])

    async def delete_by_scan(self, scan_id: str) -> int:
        before = len(self.records)
        self.records = [r for r in self.records if r.scan_id != scan_id]
        return before - len(self.records)

    async def delete_by_scans(self, scan_ids) -> int:
        before = len(self.records)
        self.records = [r for r in self.records if r.scan_id not in set(scan_ids)]
        return before - len(self.records)


class UndeletableArchiveStorage(InMemoryArchiveStorage):
    """Archive storage whose delete fails like an unreachable GridFS."""

    async def delete(self, ref: str) -> bool:
        raise ConnectionError("gridfs down")
