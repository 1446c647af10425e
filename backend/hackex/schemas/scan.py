from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ScanSubmitResponse(BaseModel):
    token: str = Field(..., description="Public token used to poll the scan")
    status: str = "pending"


class ScanStatusResponse(BaseModel):
    status: str
    score: Optional[int] = None
    verdict: Optional[str] = None
    is_complete: bool = False
    findings_count: int = 0


class FindingResponse(BaseModel):
    type: str
    title: str
    severity: str
    location: str
    evidence: str = ""
    explanation: Optional[str] = None
    attack_scenario: Optional[str] = None
    business_impact: Optional[str] = None
    fix_recommendation: Optional[str] = None


class ScanSummary(BaseModel):
    """Public view of a scan. Carries neither the internal id nor error text."""

    input_url: Optional[str] = None
    archive_name: Optional[str] = None
    status: str
    score: Optional[int] = None
    verdict: Optional[str] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class ScanResultsResponse(BaseModel):
    scan: ScanSummary
    findings: List[FindingResponse] = []
    severity_counts: Dict[str, int] = {}


class DashboardStats(BaseModel):
    total: int = 0
    safe: int = 0
    risky: int = 0
    critical: int = 0


class RecentScan(BaseModel):
    id: str
    input_url: Optional[str] = None
    archive_name: Optional[str] = None
    status: str
    score: Optional[int] = None
    verdict: Optional[str] = None
    created_at: Optional[datetime] = None


class DashboardResponse(BaseModel):
    stats: DashboardStats
    recent: List[RecentScan] = []


class PurgeResult(BaseModel):
    scans_deleted: int = 0
    archives_deleted: int = 0
