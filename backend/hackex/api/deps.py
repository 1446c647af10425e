from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from hackex.core.worker import worker_manager
from hackex.db.mongodb import get_database
from hackex.services.scan_manager import ScanManager


async def get_scan_manager(db: AsyncIOMotorDatabase = Depends(get_database)) -> ScanManager:
    return ScanManager(db, enqueue=worker_manager.add_job)
