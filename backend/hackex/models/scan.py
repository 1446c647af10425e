import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hackex.core import ensure_utc


class ScanStatus(str, Enum):
    PENDING = "pending"
    SCANNING = "scanning"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATUSES = (ScanStatus.DONE.value, ScanStatus.FAILED.value)


class Verdict(str, Enum):
    SAFE = "Safe for Launch"
    RISKY = "Risky – Fix Recommended"
    CRITICAL = "Critical – Do Not Launch"


class Scan(BaseModel):
    """
    Durable scan record (system of record).

    The internal id is never handed out to public callers; they only ever see
    short lived tokens that resolve to it.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    input_url: Optional[str] = None
    archive_ref: Optional[str] = None
    archive_name: Optional[str] = None
    status: ScanStatus = ScanStatus.PENDING
    score: Optional[int] = None
    verdict: Optional[Verdict] = None

    # Worker bookkeeping
    retry_count: int = 0
    worker_id: Optional[str] = None
    started_at: Optional[datetime] = None
    error: Optional[str] = None  # Internal only, never exposed publicly

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True, validate_default=True)

    @field_validator("created_at", "started_at", "completed_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # MongoDB hands back naive UTC datetimes
        return ensure_utc(value)

    @property
    def is_complete(self) -> bool:
        return self.status in TERMINAL_STATUSES
