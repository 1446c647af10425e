import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

import httpx

from hackex.core.config import settings
from hackex.models.finding import Finding, Severity
from hackex.services.probes.base import Probe, ProbeTarget, runtime_finding

logger = logging.getLogger(__name__)

# port -> (service name, severity)
EXPOSED_SERVICES: Dict[int, Tuple[str, str]] = {
    22: ("SSH", Severity.MEDIUM.value),
    3306: ("MySQL", Severity.CRITICAL.value),
    5432: ("PostgreSQL", Severity.CRITICAL.value),
    6379: ("Redis", Severity.CRITICAL.value),
    27017: ("MongoDB", Severity.CRITICAL.value),
}

PortConnector = Callable[[str, int, float], Awaitable[bool]]


async def tcp_connect(host: str, port: int, timeout: float) -> bool:
    """True if a TCP connection to host:port succeeds within timeout."""
    try:
        _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=timeout)
    except (OSError, asyncio.TimeoutError):
        return False
    writer.close()
    try:
        await writer.wait_closed()
    except OSError:
        pass
    return True


class OpenPortsProbe(Probe):
    """Reports database and remote shell ports reachable from the internet."""

    name = "open_ports"

    def __init__(self, connector: Optional[PortConnector] = None, timeout: Optional[float] = None):
        self.connector = connector or tcp_connect
        self.timeout = timeout if timeout is not None else settings.PORT_PROBE_TIMEOUT_SECONDS

    async def run(self, target: ProbeTarget, client: httpx.AsyncClient) -> List[Finding]:
        findings: List[Finding] = []
        for port, (service, severity) in EXPOSED_SERVICES.items():
            if not await self.connector(target.host, port, self.timeout):
                continue
            logger.info(f"{service} port {port} open on {target.host}")
            findings.append(
                runtime_finding(
                    f"Open {service} Port ({port})",
                    severity,
                    f"{target.host}:{port}",
                    f"{service} port {port} is publicly accessible",
                )
            )
        return findings
