"""Error taxonomy and error response builder for clamgate.

Two tiers, never confused:

  ClientInputError → HTTP 400
      The request itself is unusable: unreadable body, unparsable or
      oversized multipart form, missing ``file`` field. The daemon is never
      contacted.

  BackendError → HTTP 500
      The daemon failed: connection refused, deadline expired, malformed
      reply. The message embeds the underlying failure text verbatim, e.g.
      ``Scan failed: Error connecting to clamd:3310. [Errno 111] Connection refused``.
      "Daemon down" and "daemon returned garbage" are deliberately the same
      status; there is no retry.

Routing errors raised by Starlette itself (404, 405) are rendered with the
same body shape by the handlers registered in ``clamgate.main``::

    {"error": "<message>"}
"""

from __future__ import annotations

from typing import Mapping, Optional

from fastapi.responses import JSONResponse


class GatewayError(Exception):
    """Base class for failures reported to the HTTP caller."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClientInputError(GatewayError):
    """Malformed client input (HTTP 400)."""

    status_code = 400


class BackendError(GatewayError):
    """Daemon-layer failure (HTTP 500)."""

    status_code = 500


def build_error_response(
    status_code: int,
    message: str,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    """Build the JSON error body shared by every failure path."""
    return JSONResponse(
        status_code=status_code,
        content={"error": message},
        headers=dict(headers) if headers else None,
    )
