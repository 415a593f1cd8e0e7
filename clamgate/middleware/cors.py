"""Open CORS policy for clamgate.

The browser client may be served from another origin (e.g. a dev server on
:5173), so every response carries:

    Access-Control-Allow-Origin:  *
    Access-Control-Allow-Methods: GET, POST, OPTIONS
    Access-Control-Allow-Headers: Content-Type

Any OPTIONS request is answered here with a bare 200 and an empty body; it
never reaches routing or a route handler. Starlette's own CORSMiddleware only
short-circuits well-formed preflights (Origin + Access-Control-Request-Method)
and lets other OPTIONS requests fall through to a 405, hence this one.
"""

from __future__ import annotations

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORS_HEADERS: dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class OpenCORSMiddleware(BaseHTTPMiddleware):
    """Stamp CORS headers on every response; answer OPTIONS directly.

    Registered LAST in create_app() so it is outermost: error responses from
    inner middleware (e.g. the upload size guard) get the headers too.
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response
