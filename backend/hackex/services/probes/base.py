from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urlsplit

import httpx

from hackex.models.finding import Finding, FindingType, Severity

# One tier softer, used for mitigating signals (rate limiting, modern isolation headers)
_DOWNGRADE = {
    Severity.CRITICAL.value: Severity.HIGH.value,
    Severity.HIGH.value: Severity.MEDIUM.value,
    Severity.MEDIUM.value: Severity.LOW.value,
    Severity.LOW.value: Severity.LOW.value,
    Severity.POSITIVE.value: Severity.POSITIVE.value,
}


def normalize_url(url: str) -> str:
    """Prefix https:// when no scheme is given and strip trailing slashes."""
    url = url.strip()
    if not url.lower().startswith(("http://", "https://")):
        url = f"https://{url}"
    return url.rstrip("/")


def downgrade(severity: str) -> str:
    return _DOWNGRADE.get(str(severity), str(severity))


@dataclass(frozen=True)
class ProbeTarget:
    """A normalized URL split into the parts the probes need."""

    url: str
    scheme: str
    host: str
    port: Optional[int] = None

    @classmethod
    def from_url(cls, url: str) -> "ProbeTarget":
        normalized = normalize_url(url)
        parts = urlsplit(normalized)
        return cls(
            url=normalized,
            scheme=parts.scheme.lower(),
            host=parts.hostname or "",
            port=parts.port,
        )


def runtime_finding(title: str, severity: str, location: str, evidence: str) -> Finding:
    return Finding(
        type=FindingType.RUNTIME,
        title=title,
        severity=severity,
        location=location,
        evidence=evidence,
    )


class Probe(ABC):
    """
    One independent runtime check against a live target.

    Probes return their findings in a deterministic order and may raise on
    transport errors; the runner turns any exception into an absorbed
    ProbeFailure so the remaining probes still run.
    """

    name: str

    @abstractmethod
    async def run(self, target: ProbeTarget, client: httpx.AsyncClient) -> List[Finding]:
        pass
