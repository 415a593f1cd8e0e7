"""clamgate FastAPI application factory + lifespan lifecycle.

This module implements:
  - create_app() — testable application factory
  - lifespan     — @asynccontextmanager startup/shutdown sequence
  - /            — redirect to the browser client under /static/
  - /static/*    — static asset passthrough
  - app = create_app() — module-level instance for uvicorn

Startup sequence:
  1. create_app(): load_config() → app.state.config (env, resolved once)
  2. lifespan:     create_daemon_client() → app.state.daemon (write-once)
                   A malformed CLAMD_ADDRESS is fatal: logged, SystemExit(1),
                   the server never starts accepting requests.
  3. app.state.ready = True

Request path (outermost first):
  OpenCORSMiddleware → RequestIdMiddleware → UploadSizeLimitMiddleware →
  routing (/, /ping, /version, /scan/text, /scan/file, /static) → handler

Uvicorn defaults (see clamgate/run.py):
  uvicorn clamgate.main:app --host 0.0.0.0 --port 8080 \\
    --limit-concurrency 100 --backlog 50 --timeout-keep-alive 5
"""

from __future__ import annotations

import os
import pathlib
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.routing import APIRouter
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from clamgate import __version__
from clamgate.config import GatewayConfig, load_config
from clamgate.constants import STATIC_PREFIX
from clamgate.daemon import DaemonAddressError, DaemonClient
from clamgate.errors import GatewayError, build_error_response
from clamgate.health import router as health_router
from clamgate.middleware import (
    CORS_HEADERS,
    OpenCORSMiddleware,
    RequestIdMiddleware,
    UploadSizeLimitMiddleware,
)
from clamgate.scan import router as scan_router
from clamgate.utils.logger import configure_logging, get_logger

# ─── Logging Setup ────────────────────────────────────────────────────────────
# Configure logging at module import time (before any other module logs).
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if not DEBUG else "DEBUG")
JSON_LOGS = os.getenv("JSON_LOGS", "true").lower() == "true"

configure_logging(log_level=LOG_LEVEL, json_output=JSON_LOGS)
logger = get_logger(__name__)


# ─── Root Endpoint ────────────────────────────────────────────────────────────

root_router = APIRouter(tags=["root"])


@root_router.get("/", include_in_schema=False)
async def index() -> RedirectResponse:
    """Send browsers to the static client. Only exactly ``/`` matches here."""
    return RedirectResponse(url=f"{STATIC_PREFIX}/", status_code=302)


# ─── Daemon Client ────────────────────────────────────────────────────────────


def create_daemon_client(config: GatewayConfig) -> DaemonClient:
    """Build the process-wide daemon handle (5 s connect, 30 s command timeouts).

    Raises:
        DaemonAddressError: CLAMD_ADDRESS is not a usable host:port.
    """
    return DaemonClient.from_address(config.clamd_address)


# ─── Lifespan ─────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan — build the daemon client, serve, tear down.

    The daemon client is the only thing that can stop startup. Nothing here
    contacts clamd: an unreachable daemon is reported per request (HTTP 500),
    never fatal.
    """
    config: GatewayConfig = app.state.config
    logger.info(
        "clamgate starting up...",
        listen=config.listen_address,
        clamd_address=config.clamd_address,
    )

    try:
        daemon = create_daemon_client(config)
    except DaemonAddressError as exc:
        logger.error(
            "Failed to create ClamAV client",
            clamd_address=config.clamd_address,
            error=str(exc),
        )
        raise SystemExit(1) from exc

    app.state.daemon = daemon
    app.state.ready = True
    logger.info(
        "clamgate ready",
        clamd_address=str(daemon.address),
        connect_timeout_s=daemon.connect_timeout,
        command_timeout_s=daemon.command_timeout,
    )

    yield

    logger.info("clamgate shutting down...")
    app.state.ready = False
    app.state.daemon = None
    logger.info("clamgate shutdown complete")


# ─── Application Factory ──────────────────────────────────────────────────────


def _mount_static(application: FastAPI, static_dir: str) -> None:
    """Serve ``static_dir`` under /static/ (index.html for the directory itself).

    A missing directory is not fatal: /static/* then answers 404.
    """
    directory = pathlib.Path(static_dir)
    if not directory.is_dir():
        logger.warning(
            "Static directory not found — /static/ disabled",
            static_dir=str(directory.resolve()),
        )
        return
    application.mount(
        STATIC_PREFIX,
        StaticFiles(directory=str(directory), html=True),
        name="static",
    )


def create_app(config: Optional[GatewayConfig] = None) -> FastAPI:
    """Create and configure the clamgate FastAPI application.

    Call this function directly in tests to get an isolated app instance:
        app = create_app(GatewayConfig(static_dir=str(tmp_path)))

    Args:
        config: Settings to use; read from the environment when omitted.

    Returns:
        Configured FastAPI application with lifespan, routers, and middleware.
    """
    if config is None:
        config = load_config()

    # OpenAPI docs are only exposed with DEBUG=true.
    _debug = os.getenv("DEBUG", "false").lower() == "true"

    application = FastAPI(
        title="clamgate",
        description="HTTP gateway over a ClamAV scanning daemon",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if _debug else None,
        redoc_url="/redoc" if _debug else None,
        openapi_url="/openapi.json" if _debug else None,
        # Only exact paths match; "/ping/" is a 404, not a redirect.
        redirect_slashes=False,
    )

    # Write-once state; the daemon handle is filled in by the lifespan.
    application.state.config = config
    application.state.daemon = None
    application.state.ready = False

    # In Starlette the LAST-added middleware is OUTERMOST (runs first).
    # Upload size guard: innermost, only POST /scan/file.
    application.add_middleware(UploadSizeLimitMiddleware)
    # Request id: every response and log line of the request carries it.
    application.add_middleware(RequestIdMiddleware)
    # CORS: outermost, so OPTIONS never reaches anything else and every
    # response (errors included) carries the CORS headers.
    application.add_middleware(OpenCORSMiddleware)

    application.include_router(root_router)
    application.include_router(health_router)
    application.include_router(scan_router)
    _mount_static(application, config.static_dir)

    # ── Exception handlers ────────────────────────────────────────────────────
    # Every error body is {"error": "<message>"}.

    @application.exception_handler(GatewayError)
    async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
        log_method = logger.error if exc.status_code >= 500 else logger.warning
        log_method(
            "Request failed",
            status_code=exc.status_code,
            error=exc.message,
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        return build_error_response(exc.status_code, exc.message)

    @application.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            method=request.method,
            path=request.url.path,
        )
        return build_error_response(exc.status_code, str(exc.detail), headers=exc.headers)

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
        )
        # Runs outside the middleware stack, so CORS headers are added here.
        return build_error_response(500, "Internal server error", headers=CORS_HEADERS)

    return application


# ─── Module-Level App (for uvicorn) ───────────────────────────────────────────

app = create_app()
