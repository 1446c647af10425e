from hackex.services.probes.base import Probe, ProbeTarget, normalize_url
from hackex.services.probes.runner import (
    ProbeOutcome,
    RuntimeScanner,
    collect_findings,
    run_probes,
)

__all__ = [
    "Probe",
    "ProbeOutcome",
    "ProbeTarget",
    "RuntimeScanner",
    "collect_findings",
    "normalize_url",
    "run_probes",
]
