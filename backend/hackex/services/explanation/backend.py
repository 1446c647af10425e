import logging
from typing import Optional

import httpx

from hackex.core.config import settings
from hackex.core.exceptions import EnrichmentFailure
from hackex.core.http_utils import InstrumentedAsyncClient
from hackex.models.finding import Finding

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a cybersecurity assistant that explains vulnerabilities to non-technical "
    "founders in clear, human language. Always include: 1. What this issue means in simple "
    "terms 2. What attackers can do in the real world 3. The real business impact (data "
    "loss, legal issues, etc.) 4. A simple, actionable fix. Be direct, avoid jargon, and "
    "focus on business consequences."
)

USER_PROMPT = (
    "Issue: {title}\n"
    "Severity: {severity}\n"
    "Evidence: {evidence}\n"
    "Location: {location}\n"
    "\n"
    "Generate a security explanation with these sections:\n"
    "1. Plain Explanation (2-3 sentences)\n"
    "2. Real-World Attack Scenario (specific example)\n"
    "3. Business Impact (consequences)\n"
    "4. Fix Recommendation (clear steps)\n"
    "\n"
    "Format your response as JSON with these keys: explanation, attack_scenario, "
    "business_impact, fix_recommendation"
)


def build_messages(finding: Finding) -> list:
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": USER_PROMPT.format(
                title=finding.title,
                severity=finding.severity,
                evidence=finding.evidence,
                location=finding.location,
            ),
        },
    ]


class OpenAIExplanationBackend:
    """Chat completion backend producing explanations for single findings."""

    SERVICE_NAME = "OpenAI API"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = settings.OPENAI_API_KEY if api_key is None else api_key
        self.api_url = api_url or settings.OPENAI_API_URL
        self.model = model or settings.OPENAI_MODEL
        self.timeout = timeout if timeout is not None else settings.EXPLANATION_TIMEOUT_SECONDS
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def explain(self, finding: Finding) -> str:
        """Ask the model for an explanation and return its raw answer. Raises EnrichmentFailure."""
        if not self.configured:
            raise EnrichmentFailure("No API key configured")

        payload = {
            "model": self.model,
            "messages": build_messages(finding),
            "temperature": 0.7,
            "max_tokens": 1000,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with InstrumentedAsyncClient(
                self.SERVICE_NAME, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise EnrichmentFailure(f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise EnrichmentFailure(f"Request failed: {e}") from e
        except ValueError as e:
            raise EnrichmentFailure(f"Invalid JSON response: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise EnrichmentFailure("Response has no message content") from e
        if not content:
            raise EnrichmentFailure("Empty message content")
        return content
