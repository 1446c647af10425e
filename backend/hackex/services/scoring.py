from enum import Enum
from typing import Iterable, Union

from hackex.core.constants import (
    MAX_SCORE,
    MIN_SCORE,
    POSITIVE_BONUS,
    RISKY_SCORE_THRESHOLD,
    SAFE_SCORE_THRESHOLD,
    SEVERITY_WEIGHTS,
)
from hackex.models.finding import Finding, Severity
from hackex.models.scan import Verdict


def _severity_of(finding: Union[Finding, dict]) -> str:
    if isinstance(finding, dict):
        severity = finding.get("severity", "")
    else:
        severity = getattr(finding, "severity", "")
    if isinstance(severity, Enum):
        severity = severity.value
    return str(severity).lower()


def calculate_score(findings: Iterable[Union[Finding, dict]]) -> int:
    """
    Calculate the security score of a scan.

    Starts from 100 and subtracts a fixed weight per finding:
    - critical: 30
    - high: 15
    - medium: 8
    - low: 2

    Every positive finding adds a bonus of 5. The result is clamped
    to [0, 100]. Unknown severities count as nothing.
    """
    deductions = 0
    bonus = 0
    for finding in findings:
        severity = _severity_of(finding)
        if severity == Severity.POSITIVE.value:
            bonus += POSITIVE_BONUS
        else:
            deductions += SEVERITY_WEIGHTS.get(severity, 0)

    score = MAX_SCORE - deductions + bonus
    return max(MIN_SCORE, min(MAX_SCORE, score))


def determine_verdict(score: int) -> Verdict:
    """
    Map a score to a launch verdict.

    - >= 80: Safe for Launch
    - 50-79: Risky, fix recommended
    - < 50: Critical, do not launch
    """
    if score >= SAFE_SCORE_THRESHOLD:
        return Verdict.SAFE
    if score >= RISKY_SCORE_THRESHOLD:
        return Verdict.RISKY
    return Verdict.CRITICAL
