import re
from typing import Callable, Dict, List, Tuple

import httpx

from hackex.models.finding import Finding, Severity
from hackex.services.probes.base import Probe, ProbeTarget, runtime_finding

SENSITIVE_FILES: Dict[str, str] = {
    "/.env": Severity.CRITICAL.value,
    "/.env.backup": Severity.CRITICAL.value,
    "/.git/config": Severity.CRITICAL.value,
    "/.git/HEAD": Severity.CRITICAL.value,
    "/backup.zip": Severity.HIGH.value,
    "/backup.sql": Severity.HIGH.value,
    "/db.sql": Severity.HIGH.value,
    "/phpinfo.php": Severity.HIGH.value,
    "/config.php.bak": Severity.MEDIUM.value,
    "/.DS_Store": Severity.LOW.value,
}

_ENV_LINE = re.compile(r"^[A-Z_]+=.+$", re.MULTILINE)
_ZIP_MAGIC = b"PK\x03\x04"


def _looks_like_env(response: httpx.Response) -> bool:
    body = response.text
    return bool(_ENV_LINE.search(body)) or "APP_KEY=" in body or "DB_PASSWORD=" in body


def _looks_like_git(response: httpx.Response) -> bool:
    body = response.text
    return "[core]" in body or "repositoryformatversion" in body or "ref:" in body


def _looks_like_dump(response: httpx.Response) -> bool:
    body = response.text
    content_type = response.headers.get("Content-Type", "")
    return (
        "CREATE TABLE" in body
        or "INSERT INTO" in body
        or "application/zip" in content_type
        or response.content.startswith(_ZIP_MAGIC)
    )


def _looks_like_php(response: httpx.Response) -> bool:
    body = response.text
    return "<?php" in body or "phpinfo()" in body


def _not_html(response: httpx.Response) -> bool:
    body = response.text
    return "<html" not in body and "<!DOCTYPE" not in body


# Ordered: the first matching rule decides
_CONFIRMERS: List[Tuple[Callable[[str], bool], Callable[[httpx.Response], bool]]] = [
    (lambda path: ".env" in path, _looks_like_env),
    (lambda path: ".git" in path, _looks_like_git),
    (lambda path: path.endswith((".sql", ".zip")), _looks_like_dump),
    (lambda path: path.endswith(".php"), _looks_like_php),
]


def is_confirmed(path: str, response: httpx.Response) -> bool:
    """
    Decide whether a successful response really is the sensitive file.

    Many sites answer every path with a 200 landing page, so a non-empty 2xx
    is only a candidate until its content matches the expected shape.
    """
    for applies, confirm in _CONFIRMERS:
        if applies(path):
            return confirm(response)
    return _not_html(response)


class ExposedFilesProbe(Probe):
    """Requests well known sensitive files and reports confirmed exposures."""

    name = "exposed_files"

    async def run(self, target: ProbeTarget, client: httpx.AsyncClient) -> List[Finding]:
        findings: List[Finding] = []
        for path, severity in SENSITIVE_FILES.items():
            try:
                response = await client.get(f"{target.url}{path}", follow_redirects=True)
            except httpx.HTTPError:
                continue
            if not response.is_success or not response.content:
                continue
            if not is_confirmed(path, response):
                continue
            findings.append(
                runtime_finding(
                    "Exposed Sensitive File",
                    severity,
                    f"{target.url}{path}",
                    f"File '{path}' is publicly accessible",
                )
            )
        return findings
