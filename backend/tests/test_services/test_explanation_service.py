"""Tests for explanation parsing, the chat backend and template fallback."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from hackex.core.exceptions import EnrichmentFailure
from hackex.models.finding import Finding
from hackex.services.explanation import (
    FALLBACK_TEMPLATES,
    ExplanationService,
    OpenAIExplanationBackend,
    fallback_for,
    parse_explanation,
)

FINDING = Finding(
    type="runtime",
    title="Missing HTTPS/SSL",
    severity="critical",
    location="http://bad.example",
    evidence="Website is not using HTTPS encryption",
)

ANSWER = {
    "explanation": "Traffic is readable.",
    "attack_scenario": "Someone on cafe wifi reads passwords.",
    "business_impact": "Customer accounts get stolen.",
    "fix_recommendation": "Enable HTTPS.",
}


def _chat_transport(content=None, status_code=200, calls=None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if status_code != 200:
            return httpx.Response(status_code, json={"error": "nope"})
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    return httpx.MockTransport(handler)


class TestParseExplanation:
    def test_json_answer(self):
        result = parse_explanation(json.dumps(ANSWER))
        assert result.explanation == "Traffic is readable."
        assert result.fix_recommendation == "Enable HTTPS."

    def test_json_without_explanation_key_falls_to_lines(self):
        result = parse_explanation('{"summary": "x"}')
        assert result.explanation == '{"summary": "x"}'

    def test_section_headers(self):
        text = (
            "Plain Explanation\n"
            "Your site has no HTTPS.\n"
            "It is readable.\n"
            "\n"
            "Real-World Attack Scenario:\n"
            "An attacker sniffs traffic.\n"
            "Business Impact:\n"
            "Lost trust.\n"
            "Fix Recommendation:\n"
            "Install a certificate.\n"
        )
        result = parse_explanation(text)
        assert result.explanation == "Plain Explanation Your site has no HTTPS. It is readable."
        assert result.attack_scenario == "An attacker sniffs traffic."
        assert result.business_impact == "Lost trust."
        assert result.fix_recommendation == "Install a certificate."

    def test_empty_answer(self):
        assert parse_explanation("   \n").is_empty()


class TestFallbackTemplates:
    def test_one_template_per_severity(self):
        assert set(FALLBACK_TEMPLATES) == {"critical", "high", "medium", "low"}
        for template in FALLBACK_TEMPLATES.values():
            assert not template.is_empty()

    def test_unknown_and_positive_use_medium(self):
        assert fallback_for("bogus") == FALLBACK_TEMPLATES["medium"]
        assert fallback_for("positive") == FALLBACK_TEMPLATES["medium"]

    def test_case_insensitive(self):
        assert fallback_for("CRITICAL") == FALLBACK_TEMPLATES["critical"]


class TestOpenAIExplanationBackend:
    def test_request_shape(self):
        calls = []
        backend = OpenAIExplanationBackend(
            api_key="sk-test", transport=_chat_transport(json.dumps(ANSWER), calls=calls)
        )
        content = asyncio.run(backend.explain(FINDING))

        assert json.loads(content) == ANSWER
        request = calls[0]
        assert request.headers["Authorization"] == "Bearer sk-test"
        body = json.loads(request.content)
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 1000
        assert body["messages"][0]["role"] == "system"
        assert "Issue: Missing HTTPS/SSL" in body["messages"][1]["content"]
        assert "Severity: critical" in body["messages"][1]["content"]

    def test_http_error_raises(self):
        backend = OpenAIExplanationBackend(api_key="sk-test", transport=_chat_transport(status_code=500))
        with pytest.raises(EnrichmentFailure, match="HTTP 500"):
            asyncio.run(backend.explain(FINDING))

    def test_missing_content_raises(self):
        backend = OpenAIExplanationBackend(api_key="sk-test", transport=_chat_transport(content=None))
        with pytest.raises(EnrichmentFailure):
            asyncio.run(backend.explain(FINDING))

    def test_unconfigured_raises(self):
        backend = OpenAIExplanationBackend(api_key="")
        assert not backend.configured
        with pytest.raises(EnrichmentFailure):
            asyncio.run(backend.explain(FINDING))


class TestExplanationService:
    def test_backend_answer_is_used(self):
        backend = OpenAIExplanationBackend(
            api_key="sk-test", transport=_chat_transport(json.dumps(ANSWER))
        )
        result = asyncio.run(ExplanationService(backend).explain(FINDING))
        assert result.business_impact == "Customer accounts get stolen."

    def test_backend_failure_falls_back(self):
        backend = OpenAIExplanationBackend(api_key="sk-test", transport=_chat_transport(status_code=503))
        result = asyncio.run(ExplanationService(backend).explain(FINDING))
        assert result == FALLBACK_TEMPLATES["critical"]

    def test_unexpected_error_falls_back(self):
        backend = MagicMock(configured=True)
        backend.explain = AsyncMock(side_effect=RuntimeError("bug"))
        result = asyncio.run(ExplanationService(backend).explain(FINDING))
        assert result == FALLBACK_TEMPLATES["critical"]

    def test_enrich_fills_all_fields_without_backend(self, offline_explainer):
        low = Finding(type="static", title="x", severity="low", location="a.txt")
        enriched = asyncio.run(offline_explainer.enrich([FINDING, low]))
        assert [e.title for e in enriched] == ["Missing HTTPS/SSL", "x"]
        for item, severity in zip(enriched, ("critical", "low")):
            template = FALLBACK_TEMPLATES[severity]
            assert item.explanation == template.explanation
            assert item.attack_scenario == template.attack_scenario
            assert item.business_impact == template.business_impact
            assert item.fix_recommendation == template.fix_recommendation

    def test_positive_findings_are_not_sent(self):
        backend = MagicMock(configured=True)
        backend.explain = AsyncMock()
        positive = Finding(type="runtime", title="COOP", severity="positive", location="u")
        enriched = asyncio.run(ExplanationService(backend).enrich([positive]))
        backend.explain.assert_not_called()
        assert enriched[0].explanation is None
