import logging
import time
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import httpx

from hackex.core.exceptions import ProbeFailure
from hackex.core.http_utils import build_probe_client
from hackex.core.metrics import (
    probe_duration_seconds,
    probe_failures_total,
    probe_runs_total,
)
from hackex.models.finding import Finding
from hackex.services.probes.base import Probe, ProbeTarget
from hackex.services.probes.registry import probes as registered_probes

logger = logging.getLogger(__name__)


@dataclass
class ProbeOutcome:
    """Result of one probe: its findings, or the failure that was absorbed."""

    probe: str
    findings: List[Finding] = field(default_factory=list)
    error: Optional[ProbeFailure] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


async def process_probe(
    probe: Probe, target: ProbeTarget, client: httpx.AsyncClient
) -> ProbeOutcome:
    """Run a single probe and absorb any failure into the outcome."""
    start_time = time.time()
    probe_runs_total.labels(probe=probe.name).inc()
    try:
        findings = await probe.run(target, client)
        probe_duration_seconds.labels(probe=probe.name).observe(time.time() - start_time)
        logger.debug(f"Probe {probe.name} produced {len(findings)} findings for {target.url}")
        return ProbeOutcome(probe=probe.name, findings=list(findings))
    except Exception as e:
        probe_failures_total.labels(probe=probe.name).inc()
        logger.warning(f"Probe {probe.name} failed for {target.url}: {e}")
        return ProbeOutcome(probe=probe.name, error=ProbeFailure(probe.name, str(e)))


async def run_probes(
    url: str,
    probes: Optional[Iterable[Probe]] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> List[ProbeOutcome]:
    """
    Run every runtime probe sequentially against url.

    Probes share one HTTP client. A probe failure never stops the pass.
    """
    target = ProbeTarget.from_url(url)
    selected = list(probes) if probes is not None else list(registered_probes.values())

    owns_client = client is None
    if owns_client:
        client = build_probe_client()
    try:
        outcomes = []
        for probe in selected:
            outcomes.append(await process_probe(probe, target, client))
    finally:
        if owns_client:
            await client.aclose()

    failed = [o.probe for o in outcomes if not o.succeeded]
    if failed:
        logger.info(f"Runtime scan of {target.url} finished with failed probes: {', '.join(failed)}")
    return outcomes


def collect_findings(outcomes: Iterable[ProbeOutcome]) -> List[Finding]:
    """Concatenate findings in probe order."""
    findings: List[Finding] = []
    for outcome in outcomes:
        findings.extend(outcome.findings)
    return findings


def summarize(outcomes: Iterable[ProbeOutcome]) -> Dict[str, str]:
    return {o.probe: "Success" if o.succeeded else "Failed" for o in outcomes}


class RuntimeScanner:
    """Facade used by the orchestrator: url in, ordered findings out."""

    def __init__(
        self,
        probes: Optional[Iterable[Probe]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.probes = list(probes) if probes is not None else None
        self.transport = transport

    async def scan(self, url: str) -> List[Finding]:
        client = build_probe_client(transport=self.transport)
        async with client:
            outcomes = await run_probes(url, self.probes, client=client)
        logger.info(f"Runtime probes for {url}: {summarize(outcomes)}")
        return collect_findings(outcomes)
