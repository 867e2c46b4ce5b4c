"""Shared logging utilities for consistent client observability.

Usage example:
    from znvault_client.observability.logging import get_logger

    logger = get_logger("znvault_client.infrastructure.http")
    logger.debug("Retrying %s after %.3fs", path, delay)
"""

from __future__ import annotations

import logging
import time

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
_VISIBLE_PREFIX = 4


def get_logger(name: str) -> logging.Logger:
    """Return a standard logger configured for UTC timestamps.

    Args:
        name: Logger name (use a stable module-qualified name).

    Returns:
        A logger with a single stream handler and a consistent UTC format.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(fmt=_LOG_FORMAT, datefmt=_LOG_DATE_FORMAT)
        formatter.converter = time.gmtime
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def mask_secret(value: str | None) -> str:
    """Return a log-safe rendering of a credential."""
    if not value:
        return "<none>"
    if len(value) <= _VISIBLE_PREFIX * 2:
        return "****"
    return f"{value[:_VISIBLE_PREFIX]}****"
