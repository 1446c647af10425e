"""
Schema Exports

Pydantic response models exposed by the HTTP layer and the service facade.
"""

from hackex.schemas.scan import (
    DashboardResponse,
    DashboardStats,
    FindingResponse,
    PurgeResult,
    RecentScan,
    ScanResultsResponse,
    ScanStatusResponse,
    ScanSubmitResponse,
    ScanSummary,
)

__all__ = [
    "DashboardResponse",
    "DashboardStats",
    "FindingResponse",
    "PurgeResult",
    "RecentScan",
    "ScanResultsResponse",
    "ScanStatusResponse",
    "ScanSubmitResponse",
    "ScanSummary",
]
