"""
Logging setup shared by the hostel portal processes.

Every line goes to stdout as:
    2026-01-06T14:05:52Z [api] INFO message

LOG_LEVEL selects verbosity:
    INFO   normal operation (default)
    DEBUG  transaction retries, cache invalidations, subscription churn
    TRACE  raw store queries and PocketBase request parameters

Usage:
    from hostel.logging_config import configure_logging

    configure_logging(source="api")
    logger = logging.getLogger(__name__)
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import UTC, datetime

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_LEVELS_BY_NAME = {"TRACE": TRACE, "DEBUG": logging.DEBUG, "INFO": logging.INFO, "WARNING": logging.WARNING}

# Third-party loggers that are chatty at INFO.
QUIET_LOGGERS = ("httpx", "httpcore", "pocketbase")


def _trace(self: logging.Logger, message: object, *args: object, **kw: object) -> None:
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kw)  # type: ignore[arg-type]


logging.Logger.trace = _trace  # type: ignore[attr-defined]


class ISO8601Formatter(logging.Formatter):
    """Formats records with a UTC second-precision timestamp and a source tag."""

    def __init__(self, source: str = "app"):
        self.source = source
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return f"{stamp} [{self.source}] {record.levelname} {message}"


class HealthCheckFilter(logging.Filter):
    """Drops access-log lines for health probes unless running at DEBUG."""

    HEALTH_PATHS = ("/health", "/api/health")

    def filter(self, record: logging.LogRecord) -> bool:
        if record.levelno <= logging.DEBUG:
            return True
        message = record.getMessage()
        return not any(path in message and ("GET" in message or "200" in message) for path in self.HEALTH_PATHS)


def resolve_level(level_name: str | None = None, debug: bool = False) -> int:
    """Map a LOG_LEVEL string to a logging level, falling back to INFO."""
    name = (level_name if level_name is not None else os.getenv("LOG_LEVEL", "")).upper()
    if name in _LEVELS_BY_NAME:
        return _LEVELS_BY_NAME[name]
    return logging.DEBUG if debug else logging.INFO


def configure_logging(source: str = "app", level: int | None = None, debug: bool = False) -> logging.Logger:
    """Install the stdout handler on the root logger and reroute uvicorn.

    Args:
        source: Tag shown in brackets on every line (e.g. "api", "seed")
        level: Explicit level; defaults to LOG_LEVEL from the environment
        debug: Use DEBUG when LOG_LEVEL is unset

    Returns:
        The configured root logger
    """
    if level is None:
        level = resolve_level(debug=debug)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ISO8601Formatter(source=source))
    handler.addFilter(HealthCheckFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Uvicorn installs its own handlers, which would bypass HealthCheckFilter.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.setLevel(level)
        uvicorn_logger.propagate = False

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger
