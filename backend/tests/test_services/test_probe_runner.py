"""Tests for probe orchestration: ordering and failure absorption."""

import asyncio
from typing import List

import httpx

from hackex.models.finding import Finding
from hackex.services.probes.base import Probe, runtime_finding
from hackex.services.probes.registry import probes
from hackex.services.probes.runner import (
    RuntimeScanner,
    collect_findings,
    run_probes,
    summarize,
)
from tests.mocks.certificates import der_expiring_in
from tests.mocks.targets import SECURE_HEADERS, offline_probes, site_transport


class _StaticProbe(Probe):
    def __init__(self, name, titles):
        self.name = name
        self.titles = titles

    async def run(self, target, client) -> List[Finding]:
        return [runtime_finding(t, "low", target.url, "") for t in self.titles]


class _BrokenProbe(Probe):
    name = "broken"

    async def run(self, target, client):
        raise httpx.ConnectError("connection refused")


class TestRegistry:
    def test_fixed_order(self):
        assert list(probes) == [
            "transport",
            "certificate",
            "headers",
            "exposed_files",
            "admin_routes",
            "directory_listing",
            "open_ports",
            "cors",
        ]


class TestRunProbes:
    def test_failure_is_absorbed_and_others_still_run(self):
        selected = [_StaticProbe("first", ["a"]), _BrokenProbe(), _StaticProbe("last", ["b", "c"])]

        async def go():
            async with httpx.AsyncClient(transport=site_transport()) as client:
                return await run_probes("https://a.example", selected, client=client)

        outcomes = asyncio.run(go())
        assert [o.probe for o in outcomes] == ["first", "broken", "last"]
        assert not outcomes[1].succeeded
        assert outcomes[1].error.probe == "broken"
        assert outcomes[1].findings == []
        assert [f.title for f in collect_findings(outcomes)] == ["a", "b", "c"]
        assert summarize(outcomes) == {"first": "Success", "broken": "Failed", "last": "Success"}


class TestRuntimeScanner:
    def test_good_example_has_no_findings(self):
        scanner = RuntimeScanner(
            probes=offline_probes(cert_der=der_expiring_in(90)),
            transport=site_transport(headers=SECURE_HEADERS),
        )
        assert asyncio.run(scanner.scan("https://good.example")) == []

    def test_unreachable_host_produces_no_findings_and_no_error(self):
        def handler(request):
            raise httpx.ConnectError("Name or service not known")

        scanner = RuntimeScanner(
            probes=[p for p in offline_probes() if p.name != "transport"],
            transport=httpx.MockTransport(handler),
        )
        assert asyncio.run(scanner.scan("https://nowhere.invalid")) == []

    def test_plain_http_target(self):
        scanner = RuntimeScanner(probes=offline_probes(), transport=site_transport())
        findings = asyncio.run(scanner.scan("http://bad.example"))
        assert findings[0].title == "Missing HTTPS/SSL"
        assert findings[0].severity == "critical"
