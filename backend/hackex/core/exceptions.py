"""
Scan pipeline exceptions.

Sub-check failures (ProbeFailure, EnrichmentFailure) are absorbed where they
occur. Archive and attempt level failures (ExtractionFailure, ScanFailure)
propagate to the orchestrator, which retries and finally marks the scan failed.
"""

from typing import Optional


class ScanError(Exception):
    """Base exception for the scan pipeline."""


class InvalidSubmission(ScanError):
    """A scan was submitted with neither a URL nor an archive."""


class ProbeFailure(ScanError):
    """One runtime probe could not complete."""

    def __init__(self, probe: str, message: str):
        super().__init__(f"{probe}: {message}")
        self.probe = probe


class ExtractionFailure(ScanError):
    """The archive is missing, unreadable, unsafe or exceeds the size guard."""


class EnrichmentFailure(ScanError):
    """The explanation backend failed or returned an unusable answer."""


class ScanFailure(ScanError):
    """An execution attempt failed (run, enrich or score phase)."""

    def __init__(self, message: str, retryable: bool = True):
        super().__init__(message)
        self.retryable = retryable


class NotFound(ScanError):
    """
    A public token or its backing record could not be resolved.

    reason is "expired" when the token view itself is gone and
    "missing_record" when the view exists but the scan was deleted.
    """

    EXPIRED = "expired"
    MISSING_RECORD = "missing_record"

    def __init__(self, reason: str, token: Optional[str] = None):
        super().__init__(f"Scan not found ({reason})")
        self.reason = reason
        self.token = token
