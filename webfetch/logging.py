import logging
from typing import Optional

DEFAULT_LOGGER_NAME = "webfetch"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return the package logger (or a child of it).

    No handler is installed beyond a ``NullHandler``; applications decide
    where warnings go through the usual ``logging`` configuration.
    """
    logger_name = DEFAULT_LOGGER_NAME if not name else f"{DEFAULT_LOGGER_NAME}.{name}"
    logger = logging.getLogger(logger_name)
    root = logging.getLogger(DEFAULT_LOGGER_NAME)
    if not root.handlers:
        root.addHandler(logging.NullHandler())
    return logger
