import logging
from typing import Iterable, List, Optional

from hackex.core.exceptions import EnrichmentFailure
from hackex.core.metrics import enrichment_fallbacks_total
from hackex.models.finding import ExplainedFinding, Explanation, Finding, Severity
from hackex.services.explanation.backend import OpenAIExplanationBackend
from hackex.services.explanation.parser import parse_explanation
from hackex.services.explanation.templates import fallback_for

logger = logging.getLogger(__name__)


class ExplanationService:
    """
    Attaches plain language explanations to findings.

    Never fails: whenever the backend is not configured, errors out or
    answers with something unusable, the severity template is used instead.
    Positive findings are passed through without an explanation.
    """

    def __init__(self, backend: Optional[OpenAIExplanationBackend] = None):
        self.backend = backend if backend is not None else OpenAIExplanationBackend()

    async def explain(self, finding: Finding) -> Explanation:
        if self.backend.configured:
            try:
                explanation = parse_explanation(await self.backend.explain(finding))
                if explanation.is_empty():
                    raise EnrichmentFailure("Answer could not be parsed into an explanation")
                return explanation
            except Exception as e:
                logger.warning(f"Explanation for '{finding.title}' fell back to template: {e}")
        enrichment_fallbacks_total.labels(severity=str(finding.severity)).inc()
        return fallback_for(finding.severity)

    async def enrich(self, findings: Iterable[Finding]) -> List[ExplainedFinding]:
        enriched: List[ExplainedFinding] = []
        for finding in findings:
            base = finding.model_dump()
            if finding.severity == Severity.POSITIVE.value:
                enriched.append(ExplainedFinding(**base))
                continue
            explanation = await self.explain(finding)
            enriched.append(ExplainedFinding(**base, **explanation.model_dump()))
        return enriched
