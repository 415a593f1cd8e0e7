"""clamgate daemon package.

The single long-lived handle to clamd and its error types. Route handlers
depend only on ``DaemonClient``'s three operations (ping, version, scan) and
on ``DaemonError``; the wire protocol stays inside the ``clamd`` library.
"""

from clamgate.daemon.client import (
    DaemonAddress,
    DaemonAddressError,
    DaemonClient,
    DaemonError,
    DaemonTimeoutError,
    DaemonVerdict,
)

__all__ = [
    "DaemonAddress",
    "DaemonAddressError",
    "DaemonClient",
    "DaemonError",
    "DaemonTimeoutError",
    "DaemonVerdict",
]
