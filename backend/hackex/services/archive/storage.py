"""
Archive Storage

Uploaded source archives are kept in GridFS until the static scanner has
consumed them. The GridFS file id (as string) is the archive reference stored
on the scan record.
"""

import logging
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from gridfs.errors import NoFile
from motor.motor_asyncio import AsyncIOMotorDatabase, AsyncIOMotorGridFSBucket

from hackex.core.metrics import archive_storage_operations_total

logger = logging.getLogger(__name__)

BUCKET_NAME = "archives"


class ArchiveStorage:
    """Store, read and delete archive blobs by reference."""

    def __init__(self, db: AsyncIOMotorDatabase):
        self.fs = AsyncIOMotorGridFSBucket(db, bucket_name=BUCKET_NAME)

    async def store(self, filename: str, data: bytes) -> str:
        file_id = await self.fs.upload_from_stream(
            filename, data, metadata={"content_type": "application/zip"}
        )
        archive_storage_operations_total.labels(operation="store", status="success").inc()
        logger.info(f"Stored archive {filename} ({len(data)} bytes) as {file_id}")
        return str(file_id)

    async def read(self, ref: str) -> Optional[bytes]:
        """Return the archive content, or None if the reference is unknown."""
        try:
            stream = await self.fs.open_download_stream(ObjectId(ref))
            content: bytes = await stream.read()
        except (NoFile, InvalidId) as e:
            archive_storage_operations_total.labels(operation="read", status="missing").inc()
            logger.warning(f"Archive {ref} not found: {e}")
            return None
        archive_storage_operations_total.labels(operation="read", status="success").inc()
        return content

    async def delete(self, ref: str) -> bool:
        """Delete an archive. Returns False if it was already gone."""
        try:
            await self.fs.delete(ObjectId(ref))
        except (NoFile, InvalidId):
            archive_storage_operations_total.labels(operation="delete", status="missing").inc()
            return False
        archive_storage_operations_total.labels(operation="delete", status="success").inc()
        logger.info(f"Deleted archive {ref}")
        return True

    async def exists(self, ref: str) -> bool:
        try:
            doc = await self.fs.find({"_id": ObjectId(ref)}).to_list(1)
        except InvalidId:
            return False
        return bool(doc)
