"""Logging setup for jql-to-plan.

Library modules log through ``jql_to_plan.*`` loggers; only the CLI calls
:func:`setup_logging`.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 3

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER = "jql_to_plan"


def setup_logging(
    level: str | None = None,
    log_file: str | Path | None = None,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> logging.Logger:
    """Configure the ``jql_to_plan`` logger.

    Args:
        level: Log level name. Defaults to $JQL_TO_PLAN_LOG_LEVEL, then WARNING.
        log_file: Optional path for an additional rotating log file.
        max_bytes: Size per log file before rotation.
        backup_count: Number of rotated files to keep.

    Returns:
        The package root logger.
    """
    if level is None:
        level = os.environ.get("JQL_TO_PLAN_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    log_level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(log_level)

    # Repeated CLI invocations in one process must not stack handlers.
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler()
    console.setLevel(log_level)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("logging initialized (level=%s, file=%s)", level, log_file)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a component logger under the ``jql_to_plan`` namespace."""
    if not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def redact(text: str, secret: str | None) -> str:
    """Replace a credential with a placeholder before logging."""
    if not secret:
        return text
    return text.replace(secret, "[REDACTED]")
