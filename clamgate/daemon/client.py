"""Async client handle for the ClamAV daemon (clamd).

The wire protocol is the ``clamd`` library's business; this module only adds
what the gateway needs on top of it:

  - ``DaemonAddress.parse()`` — strict ``host:port`` parsing so a bad
    CLAMD_ADDRESS stops the process at startup instead of failing per request.
  - Separate timeouts: 5 s to connect, 30 s per command once connected.
  - Request deadlines: every operation runs the blocking library call in the
    event loop's default executor under ``asyncio.wait_for``. On expiry the
    caller gets ``DaemonTimeoutError`` and no partial result; the abandoned
    worker thread is still bounded by the socket timeouts above.
  - One exception family: connection refused, socket errors and malformed
    replies (including bytes that are not UTF-8) all surface as ``DaemonError``.

Concurrency:
  ``DaemonClient`` is immutable after construction and opens a fresh
  connection per operation. The ``clamd`` socket objects keep the live socket
  as instance state, so they are never shared between requests.
"""

from __future__ import annotations

import asyncio
import socket
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Optional, TypeVar

import clamd

from clamgate.constants import (
    DAEMON_COMMAND_TIMEOUT_S,
    DAEMON_CONNECT_TIMEOUT_S,
    PING_REPLY,
)
from clamgate.utils.logger import PerformanceLogger, get_logger

logger = get_logger(__name__)

T = TypeVar("T")

MAX_PORT = 65535


# ─── Errors ───────────────────────────────────────────────────────────────────


class DaemonError(Exception):
    """clamd unreachable, socket failure, or a reply the client could not parse."""


class DaemonTimeoutError(DaemonError):
    """A daemon operation did not finish within its request deadline."""


class DaemonAddressError(ValueError):
    """The configured daemon address is not a usable ``host:port`` pair."""


# ─── Value types ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class DaemonAddress:
    """TCP address of clamd."""

    host: str
    port: int

    @classmethod
    def parse(cls, address: str) -> "DaemonAddress":
        """Parse ``host:port`` (IPv6 hosts in brackets: ``[::1]:3310``).

        Raises:
            DaemonAddressError: Missing host or port, non-numeric port, or a
                port outside 1..65535.
        """
        host, sep, port_text = address.strip().rpartition(":")
        host = host.strip()
        if host.startswith("[") and host.endswith("]"):
            host = host[1:-1]
        if not sep or not host:
            raise DaemonAddressError(
                f"invalid clamd address '{address}': expected host:port"
            )
        try:
            port = int(port_text)
        except ValueError:
            raise DaemonAddressError(
                f"invalid clamd address '{address}': port '{port_text}' is not a number"
            ) from None
        if not 0 < port <= MAX_PORT:
            raise DaemonAddressError(
                f"invalid clamd address '{address}': port {port} out of range"
            )
        return cls(host=host, port=port)

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class DaemonVerdict:
    """One scanned stream as reported by clamd.

    ``status`` is clamd's literal (``OK``, ``FOUND`` or ``ERROR``); ``signature``
    is the detection name for ``FOUND`` and the error text for ``ERROR``.
    """

    filename: str
    status: str
    signature: Optional[str] = None


def parse_instream_reply(reply: Optional[dict[str, Any]]) -> list[DaemonVerdict]:
    """Convert the ``clamd`` library's ``{name: (status, reason)}`` reply.

    The library returns None when clamd closes the connection without a reply;
    that is an empty result list, not an error.
    """
    if not reply:
        return []
    return [
        DaemonVerdict(filename=name, status=status, signature=reason)
        for name, (status, reason) in reply.items()
    ]


# ─── Connection ───────────────────────────────────────────────────────────────


class _TimedNetworkSocket(clamd.ClamdNetworkSocket):
    """clamd TCP connection with a connect timeout distinct from the command timeout."""

    def __init__(
        self,
        host: str,
        port: int,
        connect_timeout: float,
        command_timeout: float,
    ) -> None:
        super().__init__(host=host, port=port, timeout=command_timeout)
        self.connect_timeout = connect_timeout
        self.clamd_socket: Optional[socket.socket] = None

    def _init_socket(self) -> None:
        try:
            self.clamd_socket = socket.create_connection(
                (self.host, self.port), timeout=self.connect_timeout
            )
            self.clamd_socket.settimeout(self.timeout)
        except OSError as exc:
            raise clamd.ConnectionError(
                f"Error connecting to {self.host}:{self.port}. {exc}"
            ) from exc

    def _close_socket(self) -> None:
        # The library closes in a finally block, also after a failed connect.
        if self.clamd_socket is not None:
            self.clamd_socket.close()
            self.clamd_socket = None


# ─── Client ───────────────────────────────────────────────────────────────────


class DaemonClient:
    """Write-once handle to clamd, shared by all requests.

    Build it with ``DaemonClient.from_address("clamd:3310")``. Every operation
    takes the request deadline in seconds.

    Raises (all operations):
        DaemonTimeoutError: deadline expired.
        DaemonError:        connection or protocol failure.
    """

    def __init__(
        self,
        address: DaemonAddress,
        connect_timeout: float = DAEMON_CONNECT_TIMEOUT_S,
        command_timeout: float = DAEMON_COMMAND_TIMEOUT_S,
    ) -> None:
        self.address = address
        self.connect_timeout = connect_timeout
        self.command_timeout = command_timeout

    @classmethod
    def from_address(cls, address: str, **timeouts: float) -> "DaemonClient":
        """Parse ``address`` and build a client; raises DaemonAddressError if malformed."""
        return cls(DaemonAddress.parse(address), **timeouts)

    # ── Operations ────────────────────────────────────────────────────────────

    async def ping(self, timeout: float) -> bool:
        """True when clamd answers PING with PONG."""
        reply = await self._call("ping", timeout, lambda conn: conn.ping())
        return reply == PING_REPLY

    async def version(self, timeout: float) -> str:
        return await self._call("version", timeout, lambda conn: conn.version())

    async def scan(self, stream: BinaryIO, timeout: float) -> list[DaemonVerdict]:
        """Stream ``stream`` to clamd with INSTREAM and return its verdicts.

        ``stream`` is read from a worker thread; the caller must not touch it
        until this coroutine returns.
        """
        reply = await self._call("scan", timeout, lambda conn: conn.instream(stream))
        verdicts = parse_instream_reply(reply)
        for verdict in verdicts:
            if verdict.signature:
                logger.info(
                    "clamd verdict",
                    status=verdict.status,
                    signature=verdict.signature,
                )
        return verdicts

    # ── Plumbing ──────────────────────────────────────────────────────────────

    def _connect(self) -> clamd.ClamdNetworkSocket:
        return _TimedNetworkSocket(
            host=self.address.host,
            port=self.address.port,
            connect_timeout=self.connect_timeout,
            command_timeout=self.command_timeout,
        )

    def _run(self, command: Callable[[clamd.ClamdNetworkSocket], T]) -> T:
        """Execute one library call on a fresh connection (worker thread)."""
        connection = self._connect()
        try:
            return command(connection)
        except clamd.ClamdError as exc:
            raise DaemonError(str(exc)) from exc
        except OSError as exc:
            raise DaemonError(f"clamd I/O error: {exc}") from exc
        except ValueError as exc:
            # The library decodes replies as UTF-8 (UnicodeDecodeError)
            raise DaemonError(f"malformed clamd reply: {exc}") from exc

    async def _call(
        self,
        operation: str,
        timeout: float,
        command: Callable[[clamd.ClamdNetworkSocket], T],
    ) -> T:
        loop = asyncio.get_running_loop()
        with PerformanceLogger(f"clamd {operation}", logger, daemon=str(self.address)):
            try:
                return await asyncio.wait_for(
                    loop.run_in_executor(None, self._run, command),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                raise DaemonTimeoutError(
                    f"clamd {operation} timed out after {timeout:g}s"
                ) from None
