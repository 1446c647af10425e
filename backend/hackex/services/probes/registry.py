"""
Probe Registry

The runtime checks in the order they execute. Insertion order is the order
in which findings are appended to a scan.
"""

from typing import Dict

from hackex.services.probes.admin_routes import AdminRoutesProbe
from hackex.services.probes.base import Probe
from hackex.services.probes.certificate import CertificateProbe
from hackex.services.probes.cors import CorsProbe
from hackex.services.probes.directory_listing import DirectoryListingProbe
from hackex.services.probes.exposed_files import ExposedFilesProbe
from hackex.services.probes.headers import SecurityHeadersProbe
from hackex.services.probes.open_ports import OpenPortsProbe
from hackex.services.probes.transport import TransportProbe

probes: Dict[str, Probe] = {
    "transport": TransportProbe(),
    "certificate": CertificateProbe(),
    "headers": SecurityHeadersProbe(),
    "exposed_files": ExposedFilesProbe(),
    "admin_routes": AdminRoutesProbe(),
    "directory_listing": DirectoryListingProbe(),
    "open_ports": OpenPortsProbe(),
    "cors": CorsProbe(),
}
