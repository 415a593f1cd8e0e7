"""Upload size guard for clamgate.

Caps the request body of POST /scan/file at MAX_UPLOAD_BYTES (10 MiB) so an
oversized form is rejected with HTTP 400 before it is parsed and before the
daemon is contacted. Other paths are not limited.

Two-phase check:
  1. Content-Length fast path: reject immediately on an oversized or
     non-numeric header value, without reading the body.
  2. Chunked / no Content-Length: accumulate the body with a rolling cap and
     reject as soon as it is exceeded. The accumulated bytes are cached on the
     request so the handler can still parse the form.
"""

from __future__ import annotations

from typing import Iterable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from clamgate.constants import MAX_UPLOAD_BYTES
from clamgate.errors import build_error_response
from clamgate.utils.logger import get_logger

logger = get_logger(__name__)

# Same message the handler uses for any unusable form
_FORM_REJECTED_MESSAGE = "Failed to parse form"

DEFAULT_LIMITED_PATHS: tuple[str, ...] = ("/scan/file",)


class UploadSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject request bodies above ``max_bytes`` on the limited paths with HTTP 400.

    Registration (in create_app() in clamgate/main.py):
        application.add_middleware(UploadSizeLimitMiddleware)

      - Content-Length > max_bytes              → 400 (no body read)
      - Content-Length == max_bytes             → accepted (boundary passes)
      - No Content-Length, body > max_bytes     → 400 (rolling cap)
      - No Content-Length, body ≤ max_bytes     → accepted, body cached
    """

    def __init__(
        self,
        app: ASGIApp,
        max_bytes: int = MAX_UPLOAD_BYTES,
        paths: Iterable[str] = DEFAULT_LIMITED_PATHS,
    ) -> None:
        super().__init__(app)
        self.max_bytes = max_bytes
        self.paths = frozenset(paths)

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        if request.url.path not in self.paths or request.method != "POST":
            return await call_next(request)

        content_length_header = request.headers.get("content-length")

        # ── Phase 1: Content-Length fast path ─────────────────────────────────
        if content_length_header is not None:
            try:
                declared_size = int(content_length_header)
            except ValueError:
                logger.warning(
                    "Invalid Content-Length header",
                    value=content_length_header,
                    path=request.url.path,
                )
                return build_error_response(400, _FORM_REJECTED_MESSAGE)

            if declared_size > self.max_bytes:
                logger.warning(
                    "Upload too large (Content-Length)",
                    declared_size=declared_size,
                    limit=self.max_bytes,
                    path=request.url.path,
                )
                return build_error_response(400, _FORM_REJECTED_MESSAGE)

            return await call_next(request)

        # ── Phase 2: Chunked / no Content-Length, rolling cap ────────────────
        body_chunks: list[bytes] = []
        total_size: int = 0

        async for chunk in request.stream():
            total_size += len(chunk)
            if total_size > self.max_bytes:
                logger.warning(
                    "Upload too large (chunked)",
                    accumulated_size=total_size,
                    limit=self.max_bytes,
                    path=request.url.path,
                )
                return build_error_response(400, _FORM_REJECTED_MESSAGE)
            body_chunks.append(chunk)

        # Request.body() returns the cached bytes instead of re-reading the
        # already-consumed stream.
        request._body = b"".join(body_chunks)  # type: ignore[attr-defined]

        return await call_next(request)
