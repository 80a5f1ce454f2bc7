import logging
import os
import sys

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEBUG_ENV = "MOTDPING_DEBUG"


def setup_logging(level: str | int = logging.WARNING, stream=None) -> logging.Logger:
    """
    Attach a single stream handler to the package logger.
    Only the command line calls this; library users configure logging themselves.
    """
    if os.getenv(DEBUG_ENV):
        level = logging.DEBUG

    logger = logging.getLogger("motdping")
    for handler in list(logger.handlers):
        if getattr(handler, "_motdping", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._motdping = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
