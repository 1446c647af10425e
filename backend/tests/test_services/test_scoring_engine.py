"""Tests for the score formula and the verdict mapping."""

from hackex.models.finding import Finding, FindingType, Severity
from hackex.models.scan import Verdict
from hackex.services.scoring import calculate_score, determine_verdict


def _finding(severity):
    return Finding(
        type=FindingType.RUNTIME,
        title="Test",
        severity=severity,
        location="https://example.com",
    )


class TestCalculateScore:
    def test_no_findings_is_perfect(self):
        assert calculate_score([]) == 100

    def test_deductions_per_severity(self):
        assert calculate_score([_finding(Severity.CRITICAL)]) == 70
        assert calculate_score([_finding(Severity.HIGH)]) == 85
        assert calculate_score([_finding(Severity.MEDIUM)]) == 92
        assert calculate_score([_finding(Severity.LOW)]) == 98

    def test_mixed_findings(self):
        findings = [_finding("critical"), _finding("high"), _finding("medium"), _finding("low")]
        assert calculate_score(findings) == 100 - 30 - 15 - 8 - 2

    def test_positive_bonus_offsets_deductions(self):
        assert calculate_score([_finding("high"), _finding("positive")]) == 90

    def test_clamped_to_hundred(self):
        assert calculate_score([_finding("positive")] * 3) == 100

    def test_clamped_to_zero(self):
        assert calculate_score([_finding("critical")] * 4) == 0

    def test_accepts_dicts(self):
        assert calculate_score([{"severity": "critical"}, {"severity": "LOW"}]) == 68

    def test_unknown_severity_ignored(self):
        assert calculate_score([{"severity": "info"}]) == 100


class TestDetermineVerdict:
    def test_boundaries(self):
        assert determine_verdict(100) == Verdict.SAFE
        assert determine_verdict(80) == Verdict.SAFE
        assert determine_verdict(79) == Verdict.RISKY
        assert determine_verdict(50) == Verdict.RISKY
        assert determine_verdict(49) == Verdict.CRITICAL
        assert determine_verdict(0) == Verdict.CRITICAL

    def test_labels(self):
        assert Verdict.SAFE.value == "Safe for Launch"
        assert Verdict.RISKY.value == "Risky – Fix Recommended"
        assert Verdict.CRITICAL.value == "Critical – Do Not Launch"
