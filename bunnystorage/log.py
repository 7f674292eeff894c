"""Default logger used for request tracing in debug mode."""

import logging

from rich.logging import RichHandler

LOGGER_NAME = "bunnystorage"


def default_logger() -> logging.Logger:
    """Return the package logger with a Rich console handler attached.

    The handler is only added once, no matter how many clients ask for it.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(show_path=False, rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    return logger
