"""Response records for the clamgate HTTP API.

One explicit pydantic model per endpoint, so every JSON body has a fixed,
documented shape:

  GET  /ping       → PingResponse      {success, message}
  GET  /version    → VersionResponse   {version}
  POST /scan/text  → ScanTextResponse  {results: [ScanResult]}
  POST /scan/file  → ScanFileResponse  {filename, size, results: [ScanResult]}

``ScanResult.clean`` is a computed field: it is derived from ``status`` on
every serialisation and cannot be passed in or assigned.
"""

from __future__ import annotations

from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, computed_field

from clamgate.constants import CLEAN_STATUS
from clamgate.daemon import DaemonVerdict


class ScanResult(BaseModel):
    """Verdict for one scanned stream."""

    model_config = ConfigDict(frozen=True)

    filename: str
    """Uploaded file's original name, or clamd's stream name for inline text."""

    status: str
    """clamd's status literal: ``OK``, ``FOUND`` or ``ERROR``."""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def clean(self) -> bool:
        return self.status == CLEAN_STATUS


def build_results(
    verdicts: Iterable[DaemonVerdict],
    filename: Optional[str] = None,
) -> list[ScanResult]:
    """Map daemon verdicts to ScanResults.

    Args:
        verdicts: Verdicts returned by ``DaemonClient.scan()``.
        filename: Name reported for every result (uploads). When None the
                  daemon's own stream name is kept (inline text).
    """
    return [
        ScanResult(
            filename=filename if filename is not None else verdict.filename,
            status=verdict.status,
        )
        for verdict in verdicts
    ]


class PingResponse(BaseModel):
    success: bool
    message: str


class VersionResponse(BaseModel):
    version: str


class ScanTextResponse(BaseModel):
    results: list[ScanResult]


class ScanFileResponse(BaseModel):
    """Body of POST /scan/file: echoes the upload alongside its verdicts."""

    filename: str
    size: int
    results: list[ScanResult]
