"""
Logging configuration.

Installs one stderr handler on the `taskapi` logger. Safe to call more
than once (every create_app() call does); later calls only adjust the
level.
"""

from __future__ import annotations

import logging
import sys

_HANDLER_NAME = "taskapi-console"


def setup_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Configure the package logger and return it."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger("taskapi")
    logger.setLevel(level)

    if not any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
        logger.addHandler(handler)

    return logger
