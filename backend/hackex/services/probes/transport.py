from typing import List

import httpx

from hackex.models.finding import Finding, Severity
from hackex.services.probes.base import Probe, ProbeTarget, runtime_finding


class TransportProbe(Probe):
    """Flags targets served over plain HTTP."""

    name = "transport"

    async def run(self, target: ProbeTarget, client: httpx.AsyncClient) -> List[Finding]:
        if target.scheme == "https":
            return []
        return [
            runtime_finding(
                "Missing HTTPS/SSL",
                Severity.CRITICAL.value,
                target.url,
                "Website is not using HTTPS encryption",
            )
        ]
