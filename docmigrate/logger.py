# ==============================================
# Logging Setup
# ==============================================
#
# Every module logs through logging.getLogger(__name__), which
# nests under the "docmigrate" logger configured here.
#
# ==============================================

import logging
import sys

ROOT_LOGGER_NAME = "docmigrate"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_level(level) -> int:
    """
    Turn a level name ("debug", "INFO", "warn", ...) or number into a logging level.
    Unknown names fall back to INFO.
    """
    if isinstance(level, int):
        return level
    return _LEVELS.get(str(level or "").strip().lower(), logging.INFO)


def configure_logging(level="INFO") -> logging.Logger:
    """
    Attach a single stderr handler to the package logger.
    Calling it again only changes the level.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(resolve_level(level))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
