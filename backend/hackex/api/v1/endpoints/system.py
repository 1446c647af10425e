from typing import Dict

from fastapi import APIRouter, Depends

from hackex.api import deps
from hackex.schemas.scan import DashboardResponse
from hackex.services.scan_manager import ScanManager

router = APIRouter()


@router.post("/recompute-verdicts", response_model=Dict[str, int], summary="Re-derive verdicts")
async def recompute_verdicts(manager: ScanManager = Depends(deps.get_scan_manager)):
    """
    Re-derive the verdict of every scored scan from its score. Only scans
    whose verdict changed are written.
    """
    updated = await manager.recompute_verdicts()
    return {"updated": updated}


@router.get("/dashboard", response_model=DashboardResponse, summary="Scan statistics")
async def get_dashboard(manager: ScanManager = Depends(deps.get_scan_manager)):
    """Totals by verdict and the most recent scans. Internal use only."""
    return await manager.dashboard()
