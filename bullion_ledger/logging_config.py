"""
Logging setup.

Every module logs through logging.getLogger(__name__). This module
attaches one console handler to the package logger so the output
format is the same everywhere.
"""

import logging

from bullion_ledger.config import get_settings

LOGGER_NAME = "bullion_ledger"

# ISO-like timestamp including milliseconds
LOG_FORMAT = (
    "%(asctime)s.%(msecs)03d - %(name)s - %(funcName)s - "
    "%(levelname)s - %(message)s"
)
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def configure_logging(level: str | None = None) -> logging.Logger:
    """Configure the package logger once and return it."""
    settings = get_settings()
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level or settings.LOG_LEVEL)

    # Avoid duplicate handlers when called more than once
    if not any(getattr(h, "_bullion_ledger", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
        )
        handler._bullion_ledger = True
        logger.addHandler(handler)

    logger.propagate = False
    return logger
