from typing import List

import httpx

from hackex.models.finding import Finding, Severity
from hackex.services.probes.base import Probe, ProbeTarget, runtime_finding

LISTING_PATHS = ("/uploads", "/files", "/assets", "/storage")
LISTING_MARKERS = ("Index of", "Directory listing")


class DirectoryListingProbe(Probe):
    name = "directory_listing"

    async def run(self, target: ProbeTarget, client: httpx.AsyncClient) -> List[Finding]:
        findings: List[Finding] = []
        for path in LISTING_PATHS:
            try:
                response = await client.get(f"{target.url}{path}", follow_redirects=True)
            except httpx.HTTPError:
                continue
            if not response.is_success:
                continue
            if any(marker in response.text for marker in LISTING_MARKERS):
                findings.append(
                    runtime_finding(
                        "Directory Listing Enabled",
                        Severity.HIGH.value,
                        f"{target.url}{path}",
                        f"Directory listing is enabled for '{path}'",
                    )
                )
        return findings
