"""Diagnostic log setup for the supervisor."""

from __future__ import annotations

import logging
from typing import TextIO

from alternate.config import DEFAULT_LOG_PREFIX

LOGGER_NAME = "alternate"

_HANDLER_ATTR = "_alternate_handler"


def configure_logging(
    stream: TextIO,
    *,
    level: int = logging.INFO,
    prefix: str = DEFAULT_LOG_PREFIX,
) -> logging.Handler:
    """Send ``alternate.*`` diagnostics to ``stream``, one prefixed line per record.

    Calling again replaces the handler installed by the previous call.
    """

    logger = logging.getLogger(LOGGER_NAME)
    for existing in list(logger.handlers):
        if getattr(existing, _HANDLER_ATTR, False):
            logger.removeHandler(existing)
            existing.close()

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(f"{_escape(prefix)}%(message)s"))
    setattr(handler, _HANDLER_ATTR, True)
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler


def _escape(prefix: str) -> str:
    return prefix.replace("%", "%%")
