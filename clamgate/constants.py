"""Shared constants for clamgate.

Timeouts, size limits and protocol literals used across modules live here.
No magic numbers in other modules — import from here.
"""

# ─── Daemon Client Timeouts ──────────────────────────────────────────────────

# TCP connect timeout for every new clamd connection (seconds).
DAEMON_CONNECT_TIMEOUT_S: float = 5.0

# Socket timeout for each command once connected (seconds).
# Bounds a worker thread even after its request deadline has expired.
DAEMON_COMMAND_TIMEOUT_S: float = 30.0

# ─── Request Deadlines ───────────────────────────────────────────────────────
# Wall-clock budget for the daemon call behind each endpoint. On expiry the
# caller gets HTTP 500 and no partial results.

PING_DEADLINE_S: float = 5.0
VERSION_DEADLINE_S: float = 5.0
SCAN_TEXT_DEADLINE_S: float = 30.0
SCAN_FILE_DEADLINE_S: float = 60.0

# ─── Upload Limits ───────────────────────────────────────────────────────────

# Maximum multipart form size accepted by POST /scan/file.
# Larger forms are rejected with HTTP 400 before the daemon is contacted.
MAX_UPLOAD_BYTES: int = 10 * 1024 * 1024  # 10 MiB = 10,485,760 bytes

# Multipart field that carries the uploaded file.
UPLOAD_FIELD_NAME: str = "file"

# ─── Daemon Protocol Literals ────────────────────────────────────────────────

# Status clamd reports for a stream with no detection.
CLEAN_STATUS: str = "OK"

# clamd replies "PONG" to a healthy PING.
PING_REPLY: str = "PONG"

# ─── Configuration Defaults ──────────────────────────────────────────────────

DEFAULT_CLAMD_ADDRESS: str = "clamd:3310"  # docker-compose service name
DEFAULT_LISTEN_HOST: str = "0.0.0.0"
DEFAULT_LISTEN_PORT: int = 8080
DEFAULT_STATIC_DIR: str = "static"

# Path prefix the static asset tree is mounted under.
STATIC_PREFIX: str = "/static"
