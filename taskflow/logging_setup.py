"""Logging configuration for the task service."""

from __future__ import annotations

import logging

LOGGER_NAME = "taskflow"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Attach a single console handler to the ``taskflow`` logger.

    Safe to call more than once: handlers installed by an earlier call are
    replaced, not stacked.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_taskflow_handler", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler._taskflow_handler = True
    logger.addHandler(handler)
    logger.debug("taskflow logging initialized at %s", logging.getLevelName(logger.level))
    return logger
