"""
Logging setup.

Every module obtains its logger through ``setup_logger(__name__)``.
"""

import logging
import sys

from cadence.core.config import get_settings

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(name: str) -> logging.Logger:
    """
    Get a logger writing to stdout at the configured level.

    Args:
        name: Logger name (usually the module's __name__)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)
    logger.setLevel(get_settings().LOG_LEVEL.upper())

    # Prevent adding handlers multiple times
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False

    return logger
