"""
Static checks run over an extracted archive.

Pattern batteries look inside small text files; targeted checks look at
specific file classes (env files, private keys, dumps, logs). Every check
takes the extraction root and the list of extracted files and returns its
findings in path order.
"""

import logging
import re
from pathlib import Path
from typing import Callable, List, Optional, Pattern, Tuple

from hackex.core.constants import (
    EVIDENCE_MAX_CHARS,
    MAX_SCANNABLE_FILE_BYTES,
    MIN_SQL_DUMP_BYTES,
)
from hackex.models.finding import Finding, FindingType, Severity

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {"php", "js", "py", "env", "json", "yml", "yaml", "txt", "md", "config"}

SECRET_PATTERNS: List[Tuple[str, Pattern]] = [
    ("AWS Access Key", re.compile(r"AKIA[0-9A-Z]{16}")),
    (
        "AWS Secret Key",
        re.compile(r"aws_secret_access_key\s*=\s*['\"]?([a-zA-Z0-9/+]{40})['\"]?", re.IGNORECASE),
    ),
    ("OpenAI API Key", re.compile(r"sk-[a-zA-Z0-9]{48}")),
    ("Stripe API Key", re.compile(r"sk_live_[a-zA-Z0-9]{24,}")),
    ("GitHub Token", re.compile(r"ghp_[a-zA-Z0-9]{36}")),
    (
        "Generic API Key",
        re.compile(r"api[_-]?key['\"\s:=]+['\"]?([a-zA-Z0-9_\-]{20,})['\"]?", re.IGNORECASE),
    ),
    (
        "Generic Secret",
        re.compile(r"secret['\"\s:=]+['\"]?([a-zA-Z0-9_\-]{20,})['\"]?", re.IGNORECASE),
    ),
]

DEBUG_PATTERNS: List[Tuple[str, Pattern]] = [
    ("Laravel Debug", re.compile(r"APP_DEBUG\s*=\s*true", re.IGNORECASE)),
    ("Django Debug", re.compile(r"DEBUG\s*=\s*True", re.IGNORECASE)),
    ("Node Debug", re.compile(r"NODE_ENV\s*=\s*['\"]?development['\"]?", re.IGNORECASE)),
]

PASSWORD_PATTERNS: List[Tuple[str, Pattern]] = [
    ("Hardcoded Password", re.compile(r"password\s*=\s*['\"]([^'\"]{6,})['\"]")),
    ("Database Password", re.compile(r"db_password\s*=\s*['\"]([^'\"]+)['\"]")),
]

ENV_SENSITIVE_KEYS = ("DB_PASSWORD", "API_KEY", "SECRET", "PASSWORD", "TOKEN")
LOG_SENSITIVE_TERMS = ("password", "api_key", "secret", "token", "credit_card")
PRIVATE_KEY_SUFFIXES = (".pem", ".key")

StaticCheck = Callable[[Path, List[Path]], List[Finding]]


def static_finding(title: str, severity: str, location: str, evidence: str) -> Finding:
    return Finding(
        type=FindingType.STATIC,
        title=title,
        severity=severity,
        location=location,
        evidence=evidence,
    )


def relative_location(root: Path, path: Path) -> str:
    return path.relative_to(root).as_posix()


def file_extension(path: Path) -> str:
    """Extension after the last dot, so '.env' has extension 'env'."""
    name = path.name
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[1].lower()


def truncate_evidence(value: str) -> str:
    return f"{value[:EVIDENCE_MAX_CHARS]}..."


def _read_text(path: Path) -> Optional[str]:
    try:
        return path.read_text(encoding="utf-8", errors="ignore")
    except OSError as e:
        logger.debug(f"Skipping unreadable file {path}: {e}")
        return None


def _is_pattern_candidate(path: Path) -> bool:
    if file_extension(path) not in TEXT_EXTENSIONS:
        return False
    try:
        return path.stat().st_size <= MAX_SCANNABLE_FILE_BYTES
    except OSError:
        return False


def pattern_battery(
    patterns: List[Tuple[str, Pattern]], severity: str, title: str
) -> StaticCheck:
    """
    Build a check reporting the first match of every pattern in every
    eligible text file. Evidence is the first capture group, truncated.
    """

    def check(root: Path, files: List[Path]) -> List[Finding]:
        findings: List[Finding] = []
        for path in files:
            if not _is_pattern_candidate(path):
                continue
            content = _read_text(path)
            if content is None:
                continue
            location = relative_location(root, path)
            for pattern_name, pattern in patterns:
                match = pattern.search(content)
                if not match:
                    continue
                captured = match.group(1) if match.groups() else None
                evidence = truncate_evidence(captured) if captured is not None else "Pattern detected"
                findings.append(
                    static_finding(f"{title} ({pattern_name})", severity, location, evidence)
                )
        return findings

    return check


check_secrets = pattern_battery(
    SECRET_PATTERNS, Severity.CRITICAL.value, "Hardcoded API Key or Secret"
)
check_debug_flags = pattern_battery(DEBUG_PATTERNS, Severity.HIGH.value, "Debug Mode Enabled")
check_hardcoded_passwords = pattern_battery(
    PASSWORD_PATTERNS, Severity.HIGH.value, "Hardcoded Password"
)


def check_env_files(root: Path, files: List[Path]) -> List[Finding]:
    findings: List[Finding] = []
    for path in files:
        if not path.name.startswith(".env"):
            continue
        content = _read_text(path)
        if content is None:
            continue
        found = [key for key in ENV_SENSITIVE_KEYS if key in content]
        if found:
            findings.append(
                static_finding(
                    "Exposed Environment File",
                    Severity.CRITICAL.value,
                    relative_location(root, path),
                    f"Found .env file with sensitive keys: {', '.join(found)}",
                )
            )
    return findings


def check_private_keys(root: Path, files: List[Path]) -> List[Finding]:
    findings: List[Finding] = []
    for path in files:
        if not (path.name.endswith(PRIVATE_KEY_SUFFIXES) or path.name == "id_rsa"):
            continue
        content = _read_text(path)
        if content and "PRIVATE KEY" in content:
            findings.append(
                static_finding(
                    "Private Key File Found",
                    Severity.CRITICAL.value,
                    relative_location(root, path),
                    "Private RSA/SSH key file detected",
                )
            )
    return findings


def check_database_dumps(root: Path, files: List[Path]) -> List[Finding]:
    findings: List[Finding] = []
    for path in files:
        if file_extension(path) != "sql":
            continue
        size = path.stat().st_size
        if size > MIN_SQL_DUMP_BYTES:
            findings.append(
                static_finding(
                    "Database Dump File Found",
                    Severity.HIGH.value,
                    relative_location(root, path),
                    f"SQL database dump file detected ({round(size / 1024, 2)} KB)",
                )
            )
    return findings


def _is_log_file(root: Path, path: Path) -> bool:
    if file_extension(path) == "log":
        return True
    return "logs" in path.relative_to(root).parts[:-1]


def check_sensitive_logs(root: Path, files: List[Path]) -> List[Finding]:
    findings: List[Finding] = []
    for path in files:
        if not _is_log_file(root, path):
            continue
        content = _read_text(path)
        if content is None:
            continue
        lowered = content.lower()
        # Only the first matching term is reported per file
        term = next((t for t in LOG_SENSITIVE_TERMS if t in lowered), None)
        if term:
            findings.append(
                static_finding(
                    "Sensitive Data in Log Files",
                    Severity.MEDIUM.value,
                    relative_location(root, path),
                    f"Log file may contain sensitive information ('{term}')",
                )
            )
    return findings


# Execution order of the static checks
STATIC_CHECKS: List[Tuple[str, StaticCheck]] = [
    ("secrets", check_secrets),
    ("env_files", check_env_files),
    ("debug_flags", check_debug_flags),
    ("private_keys", check_private_keys),
    ("database_dumps", check_database_dumps),
    ("sensitive_logs", check_sensitive_logs),
    ("hardcoded_passwords", check_hardcoded_passwords),
]
