"""FastAPI dependencies shared by the clamgate routers."""

from __future__ import annotations

from fastapi import HTTPException, Request

from clamgate.daemon import DaemonClient

STARTING_UP_MESSAGE = "clamgate is starting up"


def get_daemon(request: Request) -> DaemonClient:
    """Return the process-wide DaemonClient built by the lifespan.

    Raises HTTP 503 until the lifespan has set ``app.state.ready`` (startup not
    yet complete, or shutdown in progress).
    """
    state = request.app.state
    daemon = getattr(state, "daemon", None)
    if not getattr(state, "ready", False) or daemon is None:
        raise HTTPException(status_code=503, detail=STARTING_UP_MESSAGE)
    return daemon
