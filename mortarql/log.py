"""Package logging helpers.

Every module logs through ``logging.getLogger(__name__)``; the package root
logger carries a :class:`logging.NullHandler` so nothing is printed unless
the application configures logging or calls :func:`enable_console_logging`.
"""
from __future__ import annotations

import logging

PACKAGE_LOGGER = "mortarql"
DEFAULT_LEVEL = logging.ERROR
LOG_FORMAT = "%(asctime)s.%(msecs)03d [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_console_handler: logging.Handler | None = None


def get_logger(name: str | None = None) -> logging.Logger:
    """Return the package logger, or a child of it."""
    if not name or name == PACKAGE_LOGGER:
        return logging.getLogger(PACKAGE_LOGGER)
    if name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def set_log_level(level: int | str) -> None:
    """Set the threshold of the package logger."""
    get_logger().setLevel(level)


def enable_console_logging(level: int | str = DEFAULT_LEVEL) -> logging.Handler:
    """Attach a single stderr handler to the package logger.

    Calling this more than once replaces the level but never stacks handlers.

    Args:
        level: Threshold for both the logger and the handler.

    Returns:
        The installed handler.
    """
    global _console_handler
    logger = get_logger()
    if _console_handler is None:
        _console_handler = logging.StreamHandler()
        _console_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        logger.addHandler(_console_handler)
    _console_handler.setLevel(level)
    logger.setLevel(level)
    return _console_handler


def disable_console_logging() -> None:
    global _console_handler
    if _console_handler is not None:
        get_logger().removeHandler(_console_handler)
        _console_handler = None


get_logger().addHandler(logging.NullHandler())
