import uuid
from datetime import datetime, timezone

from pydantic import ConfigDict, Field

from hackex.models.finding import ExplainedFinding


class FindingRecord(ExplainedFinding):
    """
    A finding stored in the database, linked to a specific scan.

    Records are written once during the scan pass and only ever removed
    together with their scan.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), alias="_id")
    scan_id: str = Field(..., description="Reference to the scan")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True, use_enum_values=True, populate_by_name=True)
