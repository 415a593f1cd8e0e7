"""Daemon health endpoints for clamgate.

Implements:
  GET /ping    — PING the daemon (5 s deadline)
  GET /version — daemon version string (5 s deadline)

Both are thin: any daemon failure (refused, timeout, bad reply) becomes
HTTP 500 with the underlying error text, e.g.::

    {"error": "Failed to ping ClamAV: clamd ping timed out after 5s"}

Polled by container health probes and by the browser client's status badge.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from clamgate.constants import PING_DEADLINE_S, VERSION_DEADLINE_S
from clamgate.daemon import DaemonClient, DaemonError
from clamgate.deps import get_daemon
from clamgate.errors import BackendError
from clamgate.models import PingResponse, VersionResponse

router = APIRouter(tags=["health"])

PING_OK_MESSAGE = "ClamAV daemon is responding"
PING_UNEXPECTED_MESSAGE = "ClamAV daemon returned an unexpected ping reply"


@router.get("/ping", response_model=PingResponse)
async def ping(daemon: DaemonClient = Depends(get_daemon)) -> PingResponse:
    """Health probe. ``success`` is False when clamd answers anything but PONG."""
    try:
        alive = await daemon.ping(timeout=PING_DEADLINE_S)
    except DaemonError as exc:
        raise BackendError(f"Failed to ping ClamAV: {exc}") from exc

    return PingResponse(
        success=alive,
        message=PING_OK_MESSAGE if alive else PING_UNEXPECTED_MESSAGE,
    )


@router.get("/version", response_model=VersionResponse)
async def version(daemon: DaemonClient = Depends(get_daemon)) -> VersionResponse:
    try:
        daemon_version = await daemon.version(timeout=VERSION_DEADLINE_S)
    except DaemonError as exc:
        raise BackendError(f"Failed to get ClamAV version: {exc}") from exc

    return VersionResponse(version=daemon_version)
