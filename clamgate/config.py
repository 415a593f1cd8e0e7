"""Config loading for clamgate.

All settings come from the environment and are resolved once at startup into
a frozen ``GatewayConfig``; nothing mutates them afterwards.

Environment variables:
  CLAMD_ADDRESS — clamd ``host:port`` (default ``clamd:3310``, the docker-compose
                  service name). Validated when the daemon client is built.
  PORT          — listen port (default 8080)
  HOST          — listen host (default 0.0.0.0)
  STATIC_DIR    — directory served under /static/ (default ``static``)

An empty value counts as unset. An invalid PORT writes a message to stderr and
raises SystemExit(1) so the process never starts half-configured.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import Mapping, Optional

from clamgate.constants import (
    DEFAULT_CLAMD_ADDRESS,
    DEFAULT_LISTEN_HOST,
    DEFAULT_LISTEN_PORT,
    DEFAULT_STATIC_DIR,
)
from clamgate.utils.logger import get_logger

logger = get_logger(__name__)

# Highest valid TCP port number
MAX_PORT = 65535


# ─── Dataclasses ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class GatewayConfig:
    """Root configuration object populated from the environment.

    All fields have safe defaults — clamgate can start with an empty environment.
    """

    clamd_address: str = DEFAULT_CLAMD_ADDRESS
    host: str = DEFAULT_LISTEN_HOST
    port: int = DEFAULT_LISTEN_PORT
    static_dir: str = DEFAULT_STATIC_DIR

    @classmethod
    def defaults(cls) -> "GatewayConfig":
        """Return a fully-default GatewayConfig (no environment lookup)."""
        return cls()

    @property
    def listen_address(self) -> str:
        return f"{self.host}:{self.port}"


# ─── Config loading ───────────────────────────────────────────────────────────


def _env(environ: Mapping[str, str], name: str, default: str) -> str:
    value = environ.get(name, "").strip()
    return value or default


def parse_port(raw: str, name: str = "PORT") -> int:
    """Parse a TCP port number.

    Raises:
        ValueError: If ``raw`` is not an integer in 1..65535.
    """
    try:
        port = int(raw)
    except ValueError:
        raise ValueError(f"{name} is not a valid integer: '{raw}'") from None
    if not 0 < port <= MAX_PORT:
        raise ValueError(f"{name} is out of range (1-{MAX_PORT}): {port}")
    return port


def load_config(environ: Optional[Mapping[str, str]] = None) -> GatewayConfig:
    """Load gateway configuration from the environment.

    Args:
        environ: Mapping to read instead of ``os.environ`` (tests).

    Returns:
        GatewayConfig with every field resolved (environment merged onto defaults).

    Raises:
        SystemExit(1): If PORT is set but is not a valid port number.
    """
    if environ is None:
        environ = os.environ

    raw_port = _env(environ, "PORT", str(DEFAULT_LISTEN_PORT))
    try:
        port = parse_port(raw_port)
    except ValueError as exc:
        print(f"CONFIG ERROR: {exc}", file=sys.stderr)
        raise SystemExit(1)

    config = GatewayConfig(
        clamd_address=_env(environ, "CLAMD_ADDRESS", DEFAULT_CLAMD_ADDRESS),
        host=_env(environ, "HOST", DEFAULT_LISTEN_HOST),
        port=port,
        static_dir=_env(environ, "STATIC_DIR", DEFAULT_STATIC_DIR),
    )

    logger.debug(
        "Config loaded",
        clamd_address=config.clamd_address,
        listen=config.listen_address,
        static_dir=config.static_dir,
    )
    return config
