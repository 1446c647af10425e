import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from hackex.api import deps
from hackex.api.v1.helpers.responses import RESP_404, RESP_SUBMIT
from hackex.core.config import settings
from hackex.core.exceptions import InvalidSubmission, NotFound
from hackex.schemas.scan import ScanResultsResponse, ScanStatusResponse, ScanSubmitResponse
from hackex.services.scan_manager import ScanManager

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND_DETAIL = "Scan not found or expired"


async def read_archive(archive: UploadFile) -> bytes:
    """Read an uploaded zip, enforcing type and size limits."""
    if not (archive.filename or "").lower().endswith(".zip"):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Archive must be a .zip file",
        )
    max_bytes = settings.MAX_UPLOAD_MB * 1024 * 1024
    data = await archive.read(max_bytes + 1)
    if len(data) > max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Archive exceeds {settings.MAX_UPLOAD_MB} MB",
        )
    return data


@router.post(
    "",
    response_model=ScanSubmitResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={**RESP_SUBMIT},
    summary="Submit a scan",
)
async def submit_scan(
    url: Optional[str] = Form(None),
    archive: Optional[UploadFile] = File(None),
    consent: bool = Form(False),
    manager: ScanManager = Depends(deps.get_scan_manager),
):
    """
    Submit a URL, a zip archive of the source, or both. Returns a public
    token to poll; the scan runs in the background.
    """
    if not consent:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="You must confirm you are authorized to scan this target",
        )
    if not (url and url.strip()) and archive is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Provide a URL, an archive, or both",
        )

    archive_ref = None
    archive_name = None
    if archive is not None:
        data = await read_archive(archive)
        archive_name = archive.filename
        archive_ref = await manager.storage.store(archive_name, data)

    try:
        token = await manager.submit(url=url, archive_ref=archive_ref, archive_name=archive_name)
    except InvalidSubmission as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    return ScanSubmitResponse(token=token)


@router.get(
    "/{token}/status",
    response_model=ScanStatusResponse,
    responses={**RESP_404},
    summary="Poll scan status",
)
async def get_scan_status(token: str, manager: ScanManager = Depends(deps.get_scan_manager)):
    try:
        return await manager.get_status(token)
    except NotFound as e:
        logger.debug(f"Token lookup failed: {e.reason}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)


@router.get(
    "/{token}",
    response_model=ScanResultsResponse,
    responses={**RESP_404},
    summary="Get scan results",
)
async def get_scan_results(token: str, manager: ScanManager = Depends(deps.get_scan_manager)):
    """Scan summary and findings, most severe first."""
    try:
        return await manager.get_results(token)
    except NotFound as e:
        logger.debug(f"Token lookup failed: {e.reason}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_DETAIL)
