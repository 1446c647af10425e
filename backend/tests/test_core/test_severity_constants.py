"""Tests for severity helpers."""

from hackex.core.constants import get_severity_value, sort_by_severity
from hackex.models.finding import Finding


class TestGetSeverityValue:
    def test_ordering(self):
        assert get_severity_value("critical") > get_severity_value("high")
        assert get_severity_value("high") > get_severity_value("medium")
        assert get_severity_value("medium") > get_severity_value("low")
        assert get_severity_value("low") > get_severity_value("positive")

    def test_case_insensitive(self):
        assert get_severity_value("CRITICAL") == get_severity_value("critical")

    def test_unknown_sorts_last(self):
        assert get_severity_value("bogus") < get_severity_value("positive")
        assert get_severity_value(None) == -1
        assert get_severity_value("") == -1


class TestSortBySeverity:
    def test_descending_by_default(self):
        items = [
            {"name": "a", "severity": "low"},
            {"name": "b", "severity": "critical"},
            {"name": "c", "severity": "positive"},
            {"name": "d", "severity": "medium"},
        ]
        assert [i["name"] for i in sort_by_severity(items)] == ["b", "d", "a", "c"]

    def test_ascending(self):
        items = [{"severity": "critical"}, {"severity": "low"}]
        assert sort_by_severity(items, reverse=False)[0]["severity"] == "low"

    def test_models(self):
        items = [
            Finding(type="static", title="a", severity="low", location="x"),
            Finding(type="static", title="b", severity="high", location="y"),
        ]
        assert [f.title for f in sort_by_severity(items)] == ["b", "a"]

    def test_stable_for_equal_severity(self):
        items = [{"n": 1, "severity": "high"}, {"n": 2, "severity": "high"}]
        assert [i["n"] for i in sort_by_severity(items)] == [1, 2]
