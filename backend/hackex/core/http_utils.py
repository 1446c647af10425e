"""
HTTP Utilities

Shared httpx client construction for runtime probes and an instrumented
client wrapper for calls to external services.
"""

import logging
import time
from typing import Dict, Optional

import httpx

from hackex.core.config import settings
from hackex.core.metrics import (
    external_api_duration_seconds,
    external_api_errors_total,
    external_api_requests_total,
)

logger = logging.getLogger(__name__)


def build_probe_client(
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    headers: Optional[Dict[str, str]] = None,
) -> httpx.AsyncClient:
    """
    Create the shared client used by all runtime probes of one scan.

    Redirects are not followed by default; probes that want them opt in per
    request. The timeout bounds every single request so one slow target
    cannot stall the whole probe set.
    """
    merged_headers = {"User-Agent": settings.PROBE_USER_AGENT}
    if headers:
        merged_headers.update(headers)
    return httpx.AsyncClient(
        timeout=timeout if timeout is not None else settings.PROBE_TIMEOUT_SECONDS,
        follow_redirects=False,
        headers=merged_headers,
        transport=transport,
    )


class InstrumentedAsyncClient:
    """
    A wrapper around httpx.AsyncClient that automatically records metrics.

    Usage:
        async with InstrumentedAsyncClient("OpenAI API", timeout=30.0) as client:
            response = await client.post(url, json=payload)
    """

    def __init__(
        self,
        service_name: str,
        timeout: float = 30.0,
        **kwargs,
    ):
        self.service_name = service_name
        self._client: Optional[httpx.AsyncClient] = None
        self._timeout = timeout
        self._kwargs = kwargs
        self._NOT_STARTED_MSG = "Client not started. Use 'async with' or call start()."

    async def start(self) -> None:
        """Start the underlying client (for long-lived usage)."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, **self._kwargs)

    async def close(self) -> None:
        """Close the underlying client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "InstrumentedAsyncClient":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _record_request(self) -> None:
        external_api_requests_total.labels(service=self.service_name).inc()

    def _record_success(self, duration: float) -> None:
        external_api_duration_seconds.labels(service=self.service_name).observe(duration)

    def _record_error(self) -> None:
        external_api_errors_total.labels(service=self.service_name).inc()

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Make an arbitrary HTTP request with metrics."""
        if self._client is None:
            raise RuntimeError(self._NOT_STARTED_MSG)

        start_time = time.time()
        self._record_request()
        try:
            response = await self._client.request(method, url, **kwargs)
            self._record_success(time.time() - start_time)
            return response
        except Exception:
            self._record_error()
            raise

    async def get(self, url: str, **kwargs) -> httpx.Response:
        """Make a GET request with metrics."""
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> httpx.Response:
        """Make a POST request with metrics."""
        return await self.request("POST", url, **kwargs)
