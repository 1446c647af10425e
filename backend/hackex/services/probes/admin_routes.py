import logging
import re
from typing import List

import httpx

from hackex.core.config import settings
from hackex.models.finding import Finding, Severity
from hackex.services.probes.base import Probe, ProbeTarget, downgrade, runtime_finding

logger = logging.getLogger(__name__)

ADMIN_PATHS = ("/admin", "/administrator", "/wp-admin", "/dashboard", "/panel", "/control")

ADMIN_KEYWORDS = ("admin login", "administrator login", "dashboard login", "control panel")

# Public pages that merely mention admin words (profiles, social links)
FALSE_POSITIVE_MARKERS = (
    "facebook.com",
    "twitter.com",
    "instagram.com",
    "linkedin.com",
    "user profile",
    "public profile",
)

_FORM_TAG = re.compile(r"<form[^>]*(?:action|method)[^>]*>", re.IGNORECASE)
_HANDLE = re.compile(r"@\w+")

RATE_LIMIT_ATTEMPTS = 5
THROTTLED_STATUSES = (403, 429)


def looks_like_admin_panel(response: httpx.Response) -> bool:
    """Heuristic: a login form, admin wording or an auth challenge, and no profile signals."""
    body = response.text
    lowered = body.lower()

    has_login_form = bool(_FORM_TAG.search(body)) and (
        'type="password"' in lowered or 'name="password"' in lowered
    )
    has_admin_keywords = any(keyword in lowered for keyword in ADMIN_KEYWORDS)
    has_auth_challenge = "WWW-Authenticate" in response.headers

    is_false_positive = any(marker in lowered for marker in FALSE_POSITIVE_MARKERS) or bool(
        _HANDLE.search(body)
    )

    return (has_login_form or has_admin_keywords or has_auth_challenge) and not is_false_positive


class AdminRoutesProbe(Probe):
    """Looks for reachable admin login pages and checks whether they throttle logins."""

    name = "admin_routes"

    async def run(self, target: ProbeTarget, client: httpx.AsyncClient) -> List[Finding]:
        findings: List[Finding] = []
        for path in ADMIN_PATHS:
            url = f"{target.url}{path}"
            try:
                response = await client.get(url, follow_redirects=False)
            except httpx.HTTPError:
                continue

            if response.is_redirect or not response.is_success:
                continue
            if not looks_like_admin_panel(response):
                continue

            throttled = await self.has_rate_limiting(client, url)
            # WordPress ships its own brute force protection
            severity = Severity.MEDIUM.value if path == "/wp-admin" else Severity.HIGH.value
            if throttled:
                severity = downgrade(severity)

            evidence = f"Admin login page is publicly accessible at '{path}'"
            if path == "/wp-admin":
                evidence += " (WordPress default)"
            evidence += " - Rate limiting detected" if throttled else " - No rate limiting detected"

            findings.append(
                runtime_finding("Publicly Accessible Admin Panel", severity, url, evidence)
            )
        return findings

    async def has_rate_limiting(self, client: httpx.AsyncClient, url: str) -> bool:
        """
        Send a short burst of bogus logins.

        A 429/403 answer counts as throttling, and so does a transport error,
        since blocked connections are the most common form of protection.
        """
        try:
            for i in range(RATE_LIMIT_ATTEMPTS):
                response = await client.post(
                    url,
                    json={"username": f"test_{i}", "password": f"test_{i}"},
                    timeout=settings.RATE_LIMIT_PROBE_TIMEOUT_SECONDS,
                )
                if response.status_code in THROTTLED_STATUSES:
                    return True
        except httpx.HTTPError as e:
            logger.debug(f"Rate limit burst against {url} interrupted: {e}")
            return True
        return False
