"""
Shared Constants

Centralized constants used across the application to ensure consistency.
"""

from typing import Dict, Optional

# Severity order for sorting (higher value = more severe)
SEVERITY_ORDER: Dict[str, int] = {
    "critical": 4,
    "high": 3,
    "medium": 2,
    "low": 1,
    "positive": 0,
}

# =============================================================================
# Scoring
# =============================================================================

# Points deducted from the perfect score per finding
SEVERITY_WEIGHTS: Dict[str, int] = {
    "critical": 30,
    "high": 15,
    "medium": 8,
    "low": 2,
}

# Points credited per positive finding
POSITIVE_BONUS = 5

MAX_SCORE = 100
MIN_SCORE = 0

# Verdict thresholds (inclusive lower bounds)
SAFE_SCORE_THRESHOLD = 80
RISKY_SCORE_THRESHOLD = 50

# =============================================================================
# Static scanner limits
# =============================================================================

# Sum of declared uncompressed entry sizes (zip-bomb guard)
MAX_EXTRACTED_BYTES = 100 * 1024 * 1024

# Files larger than this are not pattern scanned
MAX_SCANNABLE_FILE_BYTES = 1024 * 1024

# SQL files above this size are reported as dumps
MIN_SQL_DUMP_BYTES = 1024

# Matched content shown in evidence is truncated to this many characters
EVIDENCE_MAX_CHARS = 50


def get_severity_value(severity: Optional[str]) -> int:
    """Get numeric value for severity. Higher = more severe."""
    if not severity:
        return -1
    return SEVERITY_ORDER.get(severity.lower(), -1)


def sort_by_severity(items: list, key: str = "severity", reverse: bool = True) -> list:
    """
    Sort a list of dicts or models by severity.

    Args:
        items: List of dicts (or objects) with severity field
        key: The key containing severity value
        reverse: If True, most severe first (default)
    """
    return sorted(
        items,
        key=lambda x: get_severity_value(
            x.get(key) if isinstance(x, dict) else getattr(x, key, None)
        ),
        reverse=reverse,
    )
