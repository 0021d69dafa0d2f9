"""Logging setup shared by the library and the server."""

from __future__ import annotations

import logging
import sys

from edutree.config import EDUTREE_LOG_LEVEL

_LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
_ROOT_LOGGER = "edutree"

_configured = False


class _ExtraFormatter(logging.Formatter):
    """Append ``extra={...}`` context to the rendered message."""

    _RESERVED = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        rendered = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in self._RESERVED and not key.startswith("_")
        }
        if not context:
            return rendered
        pairs = " ".join(f"{key}={value!r}" for key, value in sorted(context.items()))
        return f"{rendered} | {pairs}"


def configure_logging(level: str | int | None = None) -> None:
    """Install a single stream handler on the ``edutree`` and ``server`` loggers.

    Args:
        level: Log level name or number. Defaults to ``EDUTREE_LOG_LEVEL``.
    """
    global _configured
    resolved = level if level is not None else EDUTREE_LOG_LEVEL
    for name in (_ROOT_LOGGER, "server"):
        logger = logging.getLogger(name)
        logger.setLevel(resolved)
        if not _configured:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(_ExtraFormatter(_LOG_FORMAT))
            logger.addHandler(handler)
            logger.propagate = False
    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a module logger."""
    return logging.getLogger(name)
