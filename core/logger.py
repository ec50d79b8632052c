"""
Logging configuration for the splitter client.
All module loggers hang off one "splitter" logger that owns the stdout handler.
"""
import logging
import os
import sys
from typing import Optional

ROOT_LOGGER_NAME = "splitter"
LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """
    Attach the stdout handler to the splitter logger and set its level.

    Safe to call repeatedly; the handler is only added once, the level
    is always updated.

    Args:
        level: Log level name. Defaults to env LOG_LEVEL or INFO.

    Returns:
        The splitter parent logger
    """
    log_level = getattr(logging, (level or os.getenv("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(log_level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(handler)
    return root


def setup_logger(name: str) -> logging.Logger:
    """
    Return the logger for a module.

    Args:
        name: Module name (usually __name__)

    Returns:
        Child of the splitter logger, e.g. ``splitter.services.upload_workflow``
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        configure_logging()
    return root.getChild(name)
