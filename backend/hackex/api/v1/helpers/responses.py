"""
Shared OpenAPI response definitions for FastAPI route decorators.

Usage:
    from hackex.api.v1.helpers.responses import RESP_404

    @router.get("/scans/{token}", responses={**RESP_404})
    async def get_scan(...): ...
"""

RESP_404 = {404: {"description": "Scan not found or token expired"}}
RESP_413 = {413: {"description": "Archive too large"}}
RESP_422 = {422: {"description": "Invalid submission"}}

RESP_SUBMIT = {**RESP_413, **RESP_422}
