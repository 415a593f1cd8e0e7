"""Scan endpoints for clamgate.

Implements:
  POST /scan/text — scan the raw request body (30 s deadline)
  POST /scan/file — scan the ``file`` field of a multipart form (60 s deadline)

Both stream the payload to clamd with INSTREAM and answer with the verdicts.
Any other method on these paths is answered 405 by the router; the daemon is
never called.

Failure mapping:
  - body / form unreadable, ``file`` field missing, upload over 10 MiB → 400
  - daemon refused, timed out, or replied with garbage              → 500
    (``Scan failed: <underlying error>``)
"""

from __future__ import annotations

import io
import os

from fastapi import APIRouter, Depends, Request
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import ClientDisconnect

from clamgate.constants import (
    MAX_UPLOAD_BYTES,
    SCAN_FILE_DEADLINE_S,
    SCAN_TEXT_DEADLINE_S,
    UPLOAD_FIELD_NAME,
)
from clamgate.daemon import DaemonClient, DaemonError
from clamgate.deps import get_daemon
from clamgate.errors import BackendError, ClientInputError
from clamgate.models import ScanFileResponse, ScanTextResponse, build_results
from clamgate.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/scan", tags=["scan"])


def _upload_size(upload: UploadFile) -> int:
    """Size of the spooled upload in bytes; rewinds the file."""
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, os.SEEK_END)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


@router.post("/text", response_model=ScanTextResponse)
async def scan_text(
    request: Request,
    daemon: DaemonClient = Depends(get_daemon),
) -> ScanTextResponse:
    """Scan the request body as opaque bytes, whatever its content type.

    An empty body is still submitted: clamd's verdict for a zero-length stream
    is returned like any other.
    """
    try:
        body = await request.body()
    except ClientDisconnect as exc:
        raise ClientInputError("Failed to read request body") from exc

    try:
        verdicts = await daemon.scan(io.BytesIO(body), timeout=SCAN_TEXT_DEADLINE_S)
    except DaemonError as exc:
        raise BackendError(f"Scan failed: {exc}") from exc

    return ScanTextResponse(results=build_results(verdicts))


@router.post("/file", response_model=ScanFileResponse)
async def scan_file(
    request: Request,
    daemon: DaemonClient = Depends(get_daemon),
) -> ScanFileResponse:
    """Scan one uploaded file.

    The form body is size-capped by ``UploadSizeLimitMiddleware`` before this
    handler runs; the per-file check below covers apps mounted without it.
    Every result reports the uploaded file's original name.
    """
    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException, ClientDisconnect) as exc:
        # Inside an app Starlette re-raises multipart errors as HTTP 400.
        raise ClientInputError("Failed to parse form") from exc

    upload = form.get(UPLOAD_FIELD_NAME)
    if not isinstance(upload, UploadFile):
        raise ClientInputError("Failed to get file from form")

    try:
        size = _upload_size(upload)
        if size > MAX_UPLOAD_BYTES:
            raise ClientInputError("Failed to parse form")

        filename = upload.filename or ""
        logger.info("Received file", filename=filename, size=size)

        await upload.seek(0)
        try:
            verdicts = await daemon.scan(upload.file, timeout=SCAN_FILE_DEADLINE_S)
        except DaemonError as exc:
            raise BackendError(f"Scan failed: {exc}") from exc
    finally:
        await upload.close()

    return ScanFileResponse(
        filename=filename,
        size=size,
        results=build_results(verdicts, filename=filename),
    )
