"""Process logging setup for the auth API and janitor entrypoints."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_APP_LOGGERS = ("token_auth", "apps")
_DRIVER_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncpg")


def resolve_log_level(level: str) -> int:
    """Map a LOG_LEVEL value to a logging level, falling back to INFO."""

    name = level.strip().upper()
    resolved = logging.getLevelName(name) if name else logging.INFO
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(*, level: str) -> None:
    """Install the shared format and apply LOG_LEVEL to application loggers."""

    resolved_level = resolve_log_level(level)
    logging.basicConfig(level=resolved_level, format=LOG_FORMAT)
    for name in _APP_LOGGERS:
        logging.getLogger(name).setLevel(resolved_level)
    # Driver chatter stays at INFO or quieter even under DEBUG.
    for name in _DRIVER_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved_level, logging.INFO))
