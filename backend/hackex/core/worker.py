import asyncio
import logging
from typing import List, Optional

from hackex.core.config import settings
from hackex.core.metrics import worker_queue_size
from hackex.db.mongodb import get_database
from hackex.repositories import ScanRepository
from hackex.services.orchestrator import ScanOrchestrator, build_orchestrator

logger = logging.getLogger(__name__)


class ScanWorkerManager:
    def __init__(self, num_workers: int = 2, orchestrator: Optional[ScanOrchestrator] = None):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.num_workers = num_workers
        self.workers: List[asyncio.Task] = []
        self.orchestrator = orchestrator

    async def _get_orchestrator(self) -> ScanOrchestrator:
        if self.orchestrator is None:
            db = await get_database()
            self.orchestrator = build_orchestrator(db, requeue=self.add_job)
        return self.orchestrator

    async def start(self):
        """Starts the worker tasks and recovers pending jobs from DB."""
        logger.info(f"Starting {self.num_workers} scan workers...")

        for i in range(self.num_workers):
            task = asyncio.create_task(self.worker(f"worker-{i}"))
            self.workers.append(task)

        # Scans submitted before a restart are still pending in the database
        try:
            db = await get_database()
            pending = await ScanRepository(db).get_pending_ids()
            for scan_id in pending:
                await self.add_job(scan_id)
            if pending:
                logger.info(f"Recovered {len(pending)} pending scans from database.")
        except Exception as e:
            logger.error(f"Failed to recover pending jobs: {e}")

    async def stop(self):
        """Stops all worker tasks."""
        logger.info("Stopping scan workers...")
        for task in self.workers:
            task.cancel()
        await asyncio.gather(*self.workers, return_exceptions=True)
        self.workers = []

    async def add_job(self, scan_id: str):
        """Adds a scan job to the queue. Never waits for the scan itself."""
        await self.queue.put(scan_id)
        worker_queue_size.set(self.queue.qsize())
        logger.info(f"Job {scan_id} added to queue. Queue size: {self.queue.qsize()}")

    async def worker(self, name: str):
        """Worker loop that processes jobs from the queue."""
        logger.info(f"Worker {name} started")
        while True:
            try:
                scan_id = await self.queue.get()
                worker_queue_size.set(self.queue.qsize())
                logger.info(f"Worker {name} picked up scan {scan_id}")
                try:
                    orchestrator = await self._get_orchestrator()
                    await orchestrator.process(scan_id, worker_id=name)
                finally:
                    self.queue.task_done()
                logger.info(f"Worker {name} finished scan {scan_id}")

            except asyncio.CancelledError:
                logger.info(f"Worker {name} stopped")
                break
            except Exception as e:
                logger.error(f"Worker {name} crashed: {e}")
                await asyncio.sleep(1)  # Prevent tight loop if something is really broken


# Global instance
worker_manager = ScanWorkerManager(num_workers=settings.WORKER_COUNT)
