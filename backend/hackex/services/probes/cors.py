from typing import List

import httpx

from hackex.models.finding import Finding, Severity
from hackex.services.probes.base import Probe, ProbeTarget, runtime_finding

FOREIGN_ORIGIN = "https://evil.com"


class CorsProbe(Probe):
    """Sends a cross-origin request and flags a wildcard allow-origin."""

    name = "cors"

    async def run(self, target: ProbeTarget, client: httpx.AsyncClient) -> List[Finding]:
        response = await client.get(
            target.url, headers={"Origin": FOREIGN_ORIGIN}, follow_redirects=True
        )
        if response.headers.get("Access-Control-Allow-Origin") != "*":
            return []
        return [
            runtime_finding(
                "Wildcard CORS Policy",
                Severity.HIGH.value,
                target.url,
                "CORS policy allows requests from any origin (*)",
            )
        ]
