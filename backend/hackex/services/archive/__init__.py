from hackex.services.archive.extraction import extract_archive
from hackex.services.archive.scanner import StaticScanner, run_static_checks
from hackex.services.archive.storage import ArchiveStorage

__all__ = ["ArchiveStorage", "StaticScanner", "extract_archive", "run_static_checks"]
