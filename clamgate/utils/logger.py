"""Structured logging utilities for clamgate.

All modules log through structlog with keyword context instead of formatted
strings:

    logger.info("Received file", filename="sample.txt", size=17)

Every entry emitted while a request is being handled carries that request's
``request_id`` (set by ``RequestIdMiddleware``), so a caller quoting the
``X-Request-ID`` of a failed scan can be matched to the daemon calls it made.

``clamgate.main`` reconfigures logging from LOG_LEVEL / JSON_LOGS / DEBUG at
import time; the call at the bottom of this module only covers code that logs
before that (config loading, tests).
"""

import logging
import sys
import time
from contextvars import ContextVar
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

# Request id of the request currently being handled on this task
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Daemon calls slower than this are logged at WARNING instead of DEBUG.
SLOW_OPERATION_MS: float = 1000.0


def add_request_id(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add request_id to the entry when a request is being handled."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_timestamp(logger: logging.Logger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add a Unix timestamp (seconds, float) to the entry."""
    event_dict["timestamp"] = time.time()
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True
) -> None:
    """Configure structured logging for the gateway.

    Entries go to stdout, one per line, so a container runtime collects them
    without a log file.

    Args:
        log_level: Minimum level emitted (DEBUG, INFO, WARNING, ERROR, CRITICAL).
                   Unknown names fall back to INFO.
        json_output: True for JSON lines (containers), False for the coloured
                     console renderer (local development).
    """
    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        add_request_id,
        add_timestamp,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "clamgate") -> structlog.stdlib.BoundLogger:
    """Get a configured logger instance.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        Lazily bound structlog logger; it picks up the configuration in effect
        at its first use.
    """
    return structlog.get_logger(name)


class PerformanceLogger:
    """Context manager timing one daemon operation.

    Used by ``DaemonClient`` around every clamd call:

        with PerformanceLogger("clamd scan", logger, daemon="clamd:3310"):
            ...

    On success it logs ``<operation> completed`` with ``duration_ms`` at DEBUG,
    or at WARNING when the call took longer than ``slow_ms``. When the block
    raises it logs ``<operation> failed`` at ERROR with the error text and
    type. The exception is never suppressed.
    """

    def __init__(
        self,
        operation: str,
        logger: Optional[structlog.stdlib.BoundLogger] = None,
        slow_ms: float = SLOW_OPERATION_MS,
        **context: Any,
    ):
        """Initialize the timer.

        Args:
            operation: Event name prefix, e.g. ``"clamd ping"``.
            logger: Logger to write to (module default logger if None).
            slow_ms: Threshold above which a successful call logs at WARNING.
            **context: Extra keys added to both entries (e.g. ``daemon``).
        """
        self.operation = operation
        self.logger = logger or get_logger()
        self.slow_ms = slow_ms
        self.context = context
        self.start_time: float = 0
        self.end_time: float = 0

    def __enter__(self) -> "PerformanceLogger":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.end_time = time.perf_counter()
        duration_ms = (self.end_time - self.start_time) * 1000

        if exc_type is not None:
            self.logger.error(
                f"{self.operation} failed",
                operation=self.operation,
                duration_ms=duration_ms,
                error=str(exc_val),
                error_type=exc_type.__name__,
                **self.context,
            )
        else:
            log_method = self.logger.warning if duration_ms > self.slow_ms else self.logger.debug
            log_method(
                f"{self.operation} completed",
                operation=self.operation,
                duration_ms=duration_ms,
                **self.context,
            )

    @property
    def duration_ms(self) -> float:
        """Elapsed milliseconds; still running if read inside the block."""
        if self.end_time == 0:
            return (time.perf_counter() - self.start_time) * 1000
        return (self.end_time - self.start_time) * 1000


def set_request_id(request_id: str) -> None:
    """Bind a request id to the current task's logging context.

    Args:
        request_id: ULID assigned by ``RequestIdMiddleware``.
    """
    request_id_var.set(request_id)


def clear_request_id() -> None:
    """Unbind the request id once the response has been produced."""
    request_id_var.set(None)


# Defaults until clamgate.main reconfigures from the environment
configure_logging()
