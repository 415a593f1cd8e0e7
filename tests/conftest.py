"""Root test configuration for clamgate.

Provides:
  - FakeDaemon / ``fake_daemon``  — in-process stand-in for DaemonClient that
    records every call; used by route-level tests.
  - ``client``                    — TestClient over create_app() with the lifespan
    run and the daemon replaced by ``fake_daemon``.
  - FakeClamdServer / ``fake_clamd`` — a minimal clamd speaking PING, VERSION
    and INSTREAM over TCP, so the real ``clamd`` library and DaemonClient are
    exercised end to end.
  - ``closed_port_address``       — a local address nothing listens on.
"""

from __future__ import annotations

import socket
import socketserver
import struct
import threading
import time
from pathlib import Path
from typing import BinaryIO, Iterator, Optional

import pytest
from starlette.testclient import TestClient

from clamgate.config import GatewayConfig
from clamgate.daemon import DaemonAddress, DaemonError, DaemonVerdict
from clamgate.main import create_app

# Fragment of the EICAR test string; the fake clamd flags any payload containing it.
EICAR_MARKER = b"EICAR-STANDARD-ANTIVIRUS-TEST-FILE"
EICAR_SIGNATURE = "Eicar-Test-Signature"
FAKE_CLAMD_VERSION = "ClamAV 1.3.1/27300/Mon Jun 10 08:00:00 2024"


# ─── Fake DaemonClient ────────────────────────────────────────────────────────


class FakeDaemon:
    """Records calls and answers like DaemonClient.

    Set ``error`` to make every operation raise it; set ``verdicts`` to control
    what scan() reports.
    """

    def __init__(self) -> None:
        self.address = DaemonAddress(host="fake-clamd", port=3310)
        self.connect_timeout = 5.0
        self.command_timeout = 30.0
        self.ping_reply: bool = True
        self.version_reply: str = FAKE_CLAMD_VERSION
        self.verdicts: list[DaemonVerdict] = [DaemonVerdict(filename="stream", status="OK")]
        self.error: Optional[DaemonError] = None
        self.calls: list[tuple[str, float]] = []
        self.scanned: list[bytes] = []

    async def ping(self, timeout: float) -> bool:
        self.calls.append(("ping", timeout))
        if self.error is not None:
            raise self.error
        return self.ping_reply

    async def version(self, timeout: float) -> str:
        self.calls.append(("version", timeout))
        if self.error is not None:
            raise self.error
        return self.version_reply

    async def scan(self, stream: BinaryIO, timeout: float) -> list[DaemonVerdict]:
        self.calls.append(("scan", timeout))
        self.scanned.append(stream.read())
        if self.error is not None:
            raise self.error
        return list(self.verdicts)

    @property
    def scan_count(self) -> int:
        return sum(1 for name, _ in self.calls if name == "scan")


@pytest.fixture()
def fake_daemon() -> FakeDaemon:
    return FakeDaemon()


@pytest.fixture()
def static_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "static"
    directory.mkdir()
    (directory / "index.html").write_text("<h1>ClamAV Scanner</h1>")
    (directory / "app.js").write_text("console.log('clamgate');")
    return directory


@pytest.fixture()
def client(
    fake_daemon: FakeDaemon,
    static_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[TestClient]:
    """Started app (lifespan run) wired to ``fake_daemon``."""
    monkeypatch.setattr("clamgate.main.create_daemon_client", lambda config: fake_daemon)
    application = create_app(GatewayConfig(static_dir=str(static_dir)))
    with TestClient(application) as test_client:
        yield test_client


# ─── Fake clamd server ────────────────────────────────────────────────────────


class _ClamdHandler(socketserver.StreamRequestHandler):
    """One command per connection, newline-terminated reply (as clamd with ``n`` prefix)."""

    server: "FakeClamdServer"

    def handle(self) -> None:
        command = self.rfile.readline().strip()
        self.server.commands.append(command.decode())

        if command == b"nINSTREAM":
            payload = self._read_instream()
            self.server.payloads.append(payload)
            reply = self.server.instream_reply
            if reply is None:
                if EICAR_MARKER in payload:
                    reply = f"stream: {EICAR_SIGNATURE} FOUND"
                else:
                    reply = "stream: OK"
        elif command == b"nPING":
            reply = "PONG"
        elif command == b"nVERSION":
            reply = FAKE_CLAMD_VERSION
        else:
            reply = "UNKNOWN COMMAND"

        if self.server.delay:
            time.sleep(self.server.delay)
        if self.server.raw_reply is not None:
            self.wfile.write(self.server.raw_reply)
        else:
            self.wfile.write(reply.encode() + b"\n")

    def _read_instream(self) -> bytes:
        data = bytearray()
        while True:
            header = self.rfile.read(4)
            if len(header) < 4:
                break
            (size,) = struct.unpack("!L", header)
            if size == 0:
                break
            data += self.rfile.read(size)
        return bytes(data)


class FakeClamdServer(socketserver.ThreadingTCPServer):
    daemon_threads = True
    block_on_close = False
    allow_reuse_address = True

    def __init__(self) -> None:
        super().__init__(("127.0.0.1", 0), _ClamdHandler)
        self.commands: list[str] = []
        self.payloads: list[bytes] = []
        self.delay: float = 0.0
        self.instream_reply: Optional[str] = None
        # Sent verbatim for every command when set (e.g. bytes that are not UTF-8)
        self.raw_reply: Optional[bytes] = None

    @property
    def address(self) -> str:
        host, port = self.server_address[:2]
        return f"{host}:{port}"


@pytest.fixture()
def fake_clamd() -> Iterator[FakeClamdServer]:
    server = FakeClamdServer()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()


@pytest.fixture()
def closed_port_address() -> str:
    """``127.0.0.1:<port>`` with nothing listening (connection refused)."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    return f"127.0.0.1:{port}"
