"""Request id generation for clamgate.

Every inbound request gets a ULID: 26 Crockford Base32 characters, sortable by
creation time, URL-safe. It is echoed in ``X-Request-ID`` and attached to
every log entry written while the request is handled, so a caller reporting a
failed scan can be matched to the gateway's logs.

Uses the ``python-ulid`` library.
"""

from __future__ import annotations

from ulid import ULID


def generate_request_id() -> str:
    """Return a new ULID as a 26-character uppercase string."""
    return str(ULID())
