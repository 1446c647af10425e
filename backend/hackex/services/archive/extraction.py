import io
import logging
import zipfile
from pathlib import Path

from hackex.core.constants import MAX_EXTRACTED_BYTES
from hackex.core.exceptions import ExtractionFailure

logger = logging.getLogger(__name__)


def declared_size(archive: zipfile.ZipFile) -> int:
    """Sum of the uncompressed sizes declared by every entry."""
    return sum(info.file_size for info in archive.infolist())


def extract_archive(data: bytes, destination: Path, max_bytes: int = MAX_EXTRACTED_BYTES) -> Path:
    """
    Extract a zip archive into destination.

    The size guard runs on the declared entry sizes before a single byte is
    written, so a rejected archive leaves nothing behind. Entries resolving
    outside destination are rejected as well.
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, ValueError) as e:
        raise ExtractionFailure(f"Failed to open ZIP file: {e}") from e

    with archive:
        total = declared_size(archive)
        if total > max_bytes:
            raise ExtractionFailure(
                f"ZIP file too large when extracted ({total} bytes, limit {max_bytes})"
            )

        root = destination.resolve()
        for info in archive.infolist():
            target = (root / info.filename).resolve()
            if target != root and root not in target.parents:
                raise ExtractionFailure(f"Archive entry escapes extraction root: {info.filename}")

        destination.mkdir(parents=True, exist_ok=True)
        try:
            archive.extractall(destination)
        except (zipfile.BadZipFile, OSError, RuntimeError) as e:
            raise ExtractionFailure(f"Failed to extract ZIP file: {e}") from e

    logger.info(f"Extracted {total} bytes into {destination}")
    return destination
