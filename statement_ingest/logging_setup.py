"""Logging for the ``statement_ingest`` package.

Modules log through ``get_logger("statement_ingest.<module>")`` and never
attach handlers. Output is silent until an entrypoint calls
:func:`configure_logging`; the CLI does so in its root callback.

The level comes from the ``level`` argument, then the
``STATEMENT_INGEST_LOG_LEVEL`` environment variable, then ``INFO``.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

PACKAGE_LOGGER = "statement_ingest"
LEVEL_ENV = "STATEMENT_INGEST_LOG_LEVEL"
LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"

_CONFIGURED = False


def resolve_level(level: int | str | None = None) -> int:
    """Numeric level for ``level``; unknown names fall back to ``INFO``."""

    if level is None:
        level = os.getenv(LEVEL_ENV) or logging.INFO
    if isinstance(level, int):
        return level
    name = level.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = logging.getLevelNamesMapping().get(name)
    return numeric if numeric is not None else logging.INFO


def configure_logging(level: int | str | None = None, *, stream: IO[str] = sys.stderr) -> None:
    """Send package logs to ``stream``. Later calls are no-ops."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(PACKAGE_LOGGER)
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolve_level(level))
    # Root handlers would print every record a second time.
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    pkg_logger = logging.getLogger(PACKAGE_LOGGER)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)


__all__ = ["LEVEL_ENV", "configure_logging", "get_logger", "resolve_level"]
