"""
Repository Pattern for Database Access

Provides a clean abstraction layer over MongoDB collections.
"""

from hackex.repositories.base import BaseRepository
from hackex.repositories.findings import FindingRepository
from hackex.repositories.scans import ScanRepository

__all__ = [
    "BaseRepository",
    "FindingRepository",
    "ScanRepository",
]
