"""Request id tagging for clamgate.

Assigns each request a ULID, binds it to the logging context so every entry
written while handling the request carries ``request_id``, and echoes it to
the caller in ``X-Request-ID``.
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from clamgate.utils.logger import clear_request_id, set_request_id
from clamgate.utils.ulid import generate_request_id

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        request_id = generate_request_id()
        request.state.request_id = request_id
        set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_id()
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
