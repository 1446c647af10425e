from typing import Dict, List

import httpx

from hackex.core.config import settings
from hackex.models.finding import Finding, Severity
from hackex.services.probes.base import Probe, ProbeTarget, downgrade, runtime_finding

REQUIRED_HEADERS: Dict[str, str] = {
    "Content-Security-Policy": Severity.MEDIUM.value,
    "Strict-Transport-Security": Severity.HIGH.value,
    "X-Frame-Options": Severity.MEDIUM.value,
    "X-Content-Type-Options": Severity.LOW.value,
    "X-XSS-Protection": Severity.LOW.value,
    "Referrer-Policy": Severity.LOW.value,
}

# Their presence partly compensates a missing CSP
ISOLATION_HEADERS = (
    "Cross-Origin-Opener-Policy",
    "Cross-Origin-Embedder-Policy",
    "Cross-Origin-Resource-Policy",
    "Origin-Agent-Cluster",
)

DEBUG_MARKERS = ("APP_DEBUG", "Whoops")


class SecurityHeadersProbe(Probe):
    """
    Inspects the response headers and body of the landing page.

    Missing hardening headers are reported with their table severity. A few
    modern headers are reported as positive findings.
    """

    name = "headers"

    async def run(self, target: ProbeTarget, client: httpx.AsyncClient) -> List[Finding]:
        response = await client.get(
            target.url,
            follow_redirects=True,
            timeout=settings.HEADER_PROBE_TIMEOUT_SECONDS,
        )
        headers = response.headers
        findings: List[Finding] = []

        has_isolation = any(h in headers for h in ISOLATION_HEADERS)
        for header, severity in REQUIRED_HEADERS.items():
            if header in headers:
                continue
            if header == "Content-Security-Policy" and has_isolation:
                severity = downgrade(severity)
            findings.append(
                runtime_finding(
                    f"Missing {header} Header",
                    severity,
                    target.url,
                    f"Security header '{header}' is not set",
                )
            )

        if "Cross-Origin-Opener-Policy" in headers:
            findings.append(
                runtime_finding(
                    "Modern Cross-Origin Isolation (COOP)",
                    Severity.POSITIVE.value,
                    target.url,
                    f"Cross-Origin-Opener-Policy header is set: {headers['Cross-Origin-Opener-Policy']}",
                )
            )
        if (
            "Cross-Origin-Embedder-Policy" in headers
            or "Cross-Origin-Embedder-Policy-Report-Only" in headers
        ):
            findings.append(
                runtime_finding(
                    "Modern Resource Isolation (COEP)",
                    Severity.POSITIVE.value,
                    target.url,
                    "Cross-Origin-Embedder-Policy is configured",
                )
            )
        if "Reporting-Endpoints" in headers or "Report-To" in headers:
            findings.append(
                runtime_finding(
                    "Security Monitoring Enabled",
                    Severity.POSITIVE.value,
                    target.url,
                    "Reporting API configured for security monitoring",
                )
            )

        body = response.text
        if any(marker in body for marker in DEBUG_MARKERS):
            findings.append(
                runtime_finding(
                    "Debug Mode Enabled",
                    Severity.HIGH.value,
                    target.url,
                    "Debug error pages are publicly visible",
                )
            )

        return findings
