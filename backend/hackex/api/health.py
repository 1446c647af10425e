import os

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from hackex.core.cache import cache_service
from hackex.core.config import settings
from hackex.core.worker import worker_manager
from hackex.db.mongodb import db

router = APIRouter()


@router.get("/live", summary="Liveness Probe")
async def liveness():
    """
    Liveness probe to check if the application process is running.
    """
    return {"status": "alive"}


@router.get("/ready", summary="Readiness Probe")
async def readiness():
    """
    Readiness probe.
    Checks:
    1. MongoDB connectivity (ping)
    2. At least one scan worker is running
    3. Redis availability (token views)
    4. The scratch directory for archive extraction is writable
    """
    components = {
        "database": "unknown",
        "workers": "unknown",
        "cache": "unknown",
        "scratch": "unknown",
    }
    is_ready = True

    try:
        if db.client:
            await db.client.admin.command("ping")
            components["database"] = "connected"
        else:
            components["database"] = "client_not_initialized"
            is_ready = False
    except Exception as e:
        components["database"] = f"error: {str(e)}"
        is_ready = False

    active_workers = [t for t in worker_manager.workers if not t.done()]
    if active_workers:
        components["workers"] = (
            f"operational ({len(active_workers)}/{worker_manager.num_workers} active)"
        )
    else:
        # Without workers submitted scans never leave pending
        components["workers"] = "stopped"
        if worker_manager.num_workers > 0:
            is_ready = False

    # Without Redis no token can be issued or resolved
    cache_health = await cache_service.health_check()
    if cache_health.get("status") == "healthy":
        components["cache"] = "connected"
    else:
        components["cache"] = f"unavailable: {cache_health.get('error', 'unknown')}"
        is_ready = False

    try:
        os.makedirs(settings.SCRATCH_PATH, exist_ok=True)
        if os.access(settings.SCRATCH_PATH, os.W_OK):
            components["scratch"] = "writable"
        else:
            components["scratch"] = "not_writable"
            is_ready = False
    except OSError as e:
        components["scratch"] = f"error: {str(e)}"
        is_ready = False

    if is_ready:
        return {"status": "ready", "components": components}

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "components": components},
    )
