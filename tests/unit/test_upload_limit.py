"""Unit tests for clamgate/middleware/upload_limit.py — upload size guard.

Tests UploadSizeLimitMiddleware in isolation using a minimal Starlette app with
a small limit, so the boundary cases stay cheap:

  - Content-Length == limit → accepted (boundary passes)
  - Content-Length > limit  → 400 {"error": "Failed to parse form"}, handler not run
  - Non-numeric Content-Length → 400
  - Chunked body (no Content-Length) within limit → accepted, body intact
  - Chunked body over limit → 400 (rolling cap)
  - Other paths and methods are not limited
"""

from __future__ import annotations

from typing import Iterator

import pytest
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route
from starlette.testclient import TestClient

from clamgate.constants import MAX_UPLOAD_BYTES
from clamgate.middleware import UploadSizeLimitMiddleware

LIMIT = 1024

# ─── Minimal test app ─────────────────────────────────────────────────────────


class _Recorder:
    def __init__(self) -> None:
        self.calls = 0


def _make_test_app(recorder: _Recorder) -> Starlette:
    async def _echo_body(request: Request) -> Response:
        recorder.calls += 1
        body = await request.body()
        return JSONResponse({"received_bytes": len(body), "head": body[:8].decode()})

    app = Starlette(
        routes=[
            Route("/scan/file", _echo_body, methods=["POST", "PUT"]),
            Route("/scan/text", _echo_body, methods=["POST"]),
        ]
    )
    app.add_middleware(UploadSizeLimitMiddleware, max_bytes=LIMIT)
    return app


@pytest.fixture()
def recorder() -> _Recorder:
    return _Recorder()


@pytest.fixture()
def client(recorder: _Recorder) -> TestClient:
    return TestClient(_make_test_app(recorder), raise_server_exceptions=True)


def _chunks(total: int, chunk_size: int = 100) -> Iterator[bytes]:
    """Generator body: httpx sends it chunked, without Content-Length."""
    sent = 0
    while sent < total:
        size = min(chunk_size, total - sent)
        yield b"z" * size
        sent += size


def test_default_limit_is_ten_mib() -> None:
    assert MAX_UPLOAD_BYTES == 10 * 1024 * 1024


# ─── Content-Length fast path ─────────────────────────────────────────────────


class TestContentLengthFastPath:
    def test_exactly_at_limit_is_accepted(self, client: TestClient) -> None:
        response = client.post("/scan/file", content=b"x" * LIMIT)
        assert response.status_code == 200
        assert response.json()["received_bytes"] == LIMIT

    def test_one_byte_over_limit_is_rejected(
        self, client: TestClient, recorder: _Recorder
    ) -> None:
        response = client.post("/scan/file", content=b"x" * (LIMIT + 1))
        assert response.status_code == 400
        assert response.json() == {"error": "Failed to parse form"}
        assert recorder.calls == 0

    def test_declared_size_checked_before_body(self, client: TestClient) -> None:
        """An oversized header is rejected even if the actual body is tiny."""
        response = client.post(
            "/scan/file",
            content=b"x",
            headers={"content-length": str(LIMIT * 10)},
        )
        assert response.status_code == 400

    def test_invalid_content_length_is_rejected(
        self, client: TestClient, recorder: _Recorder
    ) -> None:
        response = client.post(
            "/scan/file",
            content=b"hello",
            headers={"content-length": "not-a-number"},
        )
        assert response.status_code == 400
        assert response.json() == {"error": "Failed to parse form"}
        assert recorder.calls == 0

    def test_empty_body_is_accepted(self, client: TestClient) -> None:
        response = client.post("/scan/file", content=b"")
        assert response.status_code == 200
        assert response.json()["received_bytes"] == 0


# ─── Chunked / no Content-Length ──────────────────────────────────────────────


class TestChunkedRollingCap:
    def test_chunked_within_limit_is_accepted(self, client: TestClient) -> None:
        response = client.post("/scan/file", content=_chunks(LIMIT - 24))
        assert response.status_code == 200
        data = response.json()
        assert data["received_bytes"] == LIMIT - 24
        assert data["head"] == "zzzzzzzz"

    def test_chunked_exactly_at_limit_is_accepted(self, client: TestClient) -> None:
        response = client.post("/scan/file", content=_chunks(LIMIT))
        assert response.status_code == 200
        assert response.json()["received_bytes"] == LIMIT

    def test_chunked_over_limit_is_rejected(
        self, client: TestClient, recorder: _Recorder
    ) -> None:
        response = client.post("/scan/file", content=_chunks(LIMIT * 3))
        assert response.status_code == 400
        assert response.json() == {"error": "Failed to parse form"}
        assert recorder.calls == 0


# ─── Scope ────────────────────────────────────────────────────────────────────


class TestLimitedScope:
    def test_other_paths_not_limited(self, client: TestClient) -> None:
        response = client.post("/scan/text", content=b"x" * (LIMIT * 4))
        assert response.status_code == 200
        assert response.json()["received_bytes"] == LIMIT * 4

    def test_other_methods_not_limited(self, client: TestClient) -> None:
        response = client.put("/scan/file", content=b"x" * (LIMIT * 2))
        assert response.status_code == 200
