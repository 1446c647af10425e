import asyncio
import logging
import socket
import ssl
from datetime import datetime, timezone
from typing import Callable, List, Optional

import httpx
from cryptography import x509

from hackex.core.config import settings
from hackex.models.finding import Finding, Severity
from hackex.services.probes.base import Probe, ProbeTarget, runtime_finding

logger = logging.getLogger(__name__)

CertificateFetcher = Callable[[str, int, float], bytes]


def fetch_peer_certificate(host: str, port: int, timeout: float) -> bytes:
    """Return the DER encoded leaf certificate presented by host:port."""
    ctx = ssl.create_default_context()
    # Inspect the certificate even when it no longer validates
    ctx.check_hostname = False
    ctx.verify_mode = ssl.CERT_NONE

    with socket.create_connection((host, port), timeout=timeout) as sock:
        with ctx.wrap_socket(sock, server_hostname=host) as ssock:
            der_cert = ssock.getpeercert(binary_form=True)
    if not der_cert:
        raise ssl.SSLError(f"No certificate presented by {host}:{port}")
    return der_cert


def certificate_expiry(der_bytes: bytes) -> datetime:
    cert = x509.load_der_x509_certificate(der_bytes)
    return cert.not_valid_after_utc


class CertificateProbe(Probe):
    """
    Reports certificates that are expired or close to expiry.

    Any failure to obtain the certificate is logged and yields no finding;
    a plain HTTP target is already covered by the transport probe.
    """

    name = "certificate"

    def __init__(
        self,
        fetcher: Optional[CertificateFetcher] = None,
        timeout: Optional[float] = None,
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.fetcher = fetcher or fetch_peer_certificate
        self.timeout = timeout if timeout is not None else settings.PROBE_TIMEOUT_SECONDS
        self.now = now or (lambda: datetime.now(timezone.utc))

    async def run(self, target: ProbeTarget, client: httpx.AsyncClient) -> List[Finding]:
        port = target.port or 443
        try:
            der = await asyncio.to_thread(self.fetcher, target.host, port, self.timeout)
            not_after = certificate_expiry(der)
        except Exception as e:
            logger.info(f"Certificate check skipped for {target.host}:{port}: {e}")
            return []

        days_left = (not_after - self.now()).total_seconds() / 86400

        if days_left < 0:
            return [
                runtime_finding(
                    "Expired SSL Certificate",
                    Severity.CRITICAL.value,
                    target.host,
                    f"SSL certificate expired on {not_after:%b %d %H:%M:%S %Y} GMT",
                )
            ]
        if days_left < 7:
            return [
                runtime_finding(
                    "SSL Certificate Expiring Very Soon",
                    Severity.HIGH.value,
                    target.host,
                    f"SSL certificate expires in {round(days_left)} days",
                )
            ]
        if days_left < 30:
            return [
                runtime_finding(
                    "SSL Certificate Expiring Soon",
                    Severity.MEDIUM.value,
                    target.host,
                    f"SSL certificate expires in {round(days_left)} days (usually auto-renewed)",
                )
            ]
        return []
