"""clamgate models package.

Defines the response contracts of the HTTP API (scan.py). Every route returns
one of these records; no handler builds a JSON body from a loose dict.
"""

from clamgate.models.scan import (
    PingResponse,
    ScanFileResponse,
    ScanResult,
    ScanTextResponse,
    VersionResponse,
    build_results,
)

__all__ = [
    "PingResponse",
    "ScanFileResponse",
    "ScanResult",
    "ScanTextResponse",
    "VersionResponse",
    "build_results",
]
