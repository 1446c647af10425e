import asyncio
import logging
from typing import Optional

from fastapi import FastAPI

from hackex.api import health
from hackex.api.v1.endpoints import scans, system
from hackex.core.cache import cache_service
from hackex.core.config import settings
from hackex.core.housekeeping import housekeeping_loop
from hackex.core.init_db import create_indexes
from hackex.core.metrics import APP_VERSION, PrometheusMiddleware, metrics_endpoint
from hackex.core.worker import worker_manager
from hackex.db.mongodb import close_mongo_connection, connect_to_mongo, get_database

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="""
    HackEx Scanner API for pre-launch security checks of web applications.

    ## Features
    * **Runtime probes**: HTTPS, certificate, security headers, exposed files, admin panels, directory listings, open ports and CORS.
    * **Source archive scan**: Hardcoded secrets, debug flags, private keys, database dumps and sensitive logs inside an uploaded zip.
    * **Score & verdict**: A 0-100 score and a launch verdict per scan.
    * **Plain language explanations**: Every finding explained for non-technical founders.

    """,
    version=APP_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)

app.add_middleware(PrometheusMiddleware)

_housekeeping_task: Optional[asyncio.Task] = None


@app.on_event("startup")
async def startup_event():
    global _housekeeping_task
    await connect_to_mongo()
    await create_indexes(await get_database())
    await worker_manager.start()
    _housekeeping_task = asyncio.create_task(housekeeping_loop())


@app.on_event("shutdown")
async def shutdown_event():
    if _housekeeping_task is not None:
        _housekeeping_task.cancel()
    await worker_manager.stop()
    await cache_service.close()
    await close_mongo_connection()


app.add_route("/metrics", metrics_endpoint, include_in_schema=False)
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(scans.router, prefix=f"{settings.API_V1_STR}/scans", tags=["scans"])
app.include_router(system.router, prefix=f"{settings.API_V1_STR}/system", tags=["system"])
