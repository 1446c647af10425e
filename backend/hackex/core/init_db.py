import logging

import pymongo

logger = logging.getLogger(__name__)


async def create_indexes(db):
    """Creates indexes for all collections to ensure performance."""
    logger.info("Creating database indexes...")

    # Scans
    await db["scans"].create_index("status")  # For worker queue recovery
    await db["scans"].create_index([("created_at", pymongo.DESCENDING)])  # Dashboard, retention
    await db["scans"].create_index("verdict")
    # Stuck scan watchdog
    await db["scans"].create_index(
        [("status", pymongo.ASCENDING), ("started_at", pymongo.ASCENDING)]
    )

    # Findings
    await db["findings"].create_index("scan_id")
    # Compound for fast retrieval of scan results
    await db["findings"].create_index(
        [("scan_id", pymongo.ASCENDING), ("severity", pymongo.DESCENDING)]
    )

    logger.info("Database indexes created successfully.")
