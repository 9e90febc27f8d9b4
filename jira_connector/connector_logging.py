"""Logging setup shared by all connector modules."""

from __future__ import annotations

import logging
import sys

LOGGER_NAME = "jira_connector"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the connector logger, or a child of it when ``name`` is given."""
    if name:
        return logging.getLogger(f"{LOGGER_NAME}.{name}")
    return logging.getLogger(LOGGER_NAME)


def setup_logging(level: str | int = "INFO") -> logging.Logger:
    """Attach a single stderr handler to the connector logger.

    Calling this more than once only updates the level.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or numeric level

    Returns:
        The configured connector logger
    """
    logger = get_logger()
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    logger.setLevel(level)

    if not any(getattr(h, "_jira_connector", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._jira_connector = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger
