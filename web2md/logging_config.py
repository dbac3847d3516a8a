"""Logging setup for the ``web2md`` logger hierarchy.

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
installed once by the process entry point (the API app's lifespan).
"""

from __future__ import annotations

import logging
import sys

from web2md.config import Settings

_LOGGER_NAME = "web2md"
_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
_HANDLER_MARKER = "_web2md_handler"


def _resolve_log_level(raw_level: str) -> int:
    normalized = raw_level.strip().upper()
    level = logging.getLevelName(normalized)
    if isinstance(level, int):
        return level
    return logging.INFO


def configure_logging(settings: Settings) -> logging.Logger:
    """Attach a single stdout handler to the ``web2md`` logger.

    Calling this more than once only updates the level.
    """
    logger = logging.getLogger(_LOGGER_NAME)
    level = _resolve_log_level(settings.log_level)
    logger.setLevel(level)

    for handler in logger.handlers:
        if getattr(handler, _HANDLER_MARKER, False):
            handler.setLevel(level)
            return logger

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(_FORMAT))
    setattr(handler, _HANDLER_MARKER, True)
    logger.addHandler(handler)
    logger.propagate = False
    return logger
