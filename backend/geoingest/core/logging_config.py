"""Logging configuration for the ingestion service.

All modules log through ``logging.getLogger(__name__)``, which places them
under the ``geoingest`` namespace. setup_logging() attaches a single console
handler to that namespace so library users can still configure the root
logger as they please.

Example:
    >>> from geoingest.core.logging_config import setup_logging
    >>> logger = setup_logging("DEBUG")
    >>> logger.info("Processing started")
"""

import logging
import sys

LOGGER_NAME = "geoingest"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str | int = logging.INFO) -> logging.Logger:
    """Configure the ``geoingest`` logger with a console handler.

    Existing handlers are removed first, so calling this more than once
    (e.g. each time an app is created in tests) never duplicates output.

    Args:
        level: Logging level name or number.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.handlers.clear()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(
        logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    )
    logger.addHandler(console)
    logger.propagate = False

    logger.debug("Logging initialized at level %s", level)
    return logger
