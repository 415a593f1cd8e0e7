"""Programmatic uvicorn entry point for clamgate.

Reads the listen host and port from the environment (0.0.0.0:8080 by default)
and starts uvicorn with bounded connection handling:

  --limit-concurrency 100  Max 100 concurrent connections; HTTP 503 when exceeded
  --backlog 50             OS connection queue depth
  --timeout-keep-alive 5   Short keep-alive window for idle browser connections

Usage:
    python -m clamgate.run
    clamgate                    # via pyproject.toml [project.scripts]

If the listener cannot bind, uvicorn logs the error and exits non-zero. A
malformed CLAMD_ADDRESS stops startup in the application lifespan.
"""

from __future__ import annotations

import uvicorn

from clamgate.config import load_config
from clamgate.utils.logger import get_logger

logger = get_logger(__name__)

# Maximum number of concurrent connections accepted by uvicorn.
# New connections receive HTTP 503 when this limit is exceeded.
UVICORN_LIMIT_CONCURRENCY: int = 100

# OS-level TCP connection backlog queue size.
UVICORN_BACKLOG: int = 50

# HTTP keep-alive timeout in seconds.
UVICORN_TIMEOUT_KEEP_ALIVE: int = 5


def main() -> None:
    """Start the clamgate server.

    Raises:
        SystemExit: Propagated from load_config() on an invalid PORT.
    """
    config = load_config()

    logger.info(
        "Starting server",
        listen=config.listen_address,
        clamd_address=config.clamd_address,
    )

    uvicorn.run(
        "clamgate.main:app",
        host=config.host,
        port=config.port,
        limit_concurrency=UVICORN_LIMIT_CONCURRENCY,
        backlog=UVICORN_BACKLOG,
        timeout_keep_alive=UVICORN_TIMEOUT_KEEP_ALIVE,
    )


if __name__ == "__main__":
    main()
