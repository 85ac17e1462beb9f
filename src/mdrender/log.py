"""Logging setup: a single loguru stderr sink at the configured level"""

import sys

from loguru import logger


LOG_FORMAT = "<level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"


def configure_logging(level: str = "WARNING") -> int:
    """Replace loguru's default sink with one stderr sink; returns the sink id."""
    logger.remove()
    return logger.add(sys.stderr, level=level.upper(), format=LOG_FORMAT)
