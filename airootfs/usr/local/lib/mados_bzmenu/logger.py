"""madOS Bluetooth Menu - Logger configuration.

Usage:
    from .logger import get_logger
    logger = get_logger(__name__)

Logs go to stderr so they never interleave with launcher I/O.
"""

import logging
import os
import sys

LOG_LEVEL_ENV = "MADOS_BZMENU_LOG_LEVEL"
DEFAULT_LEVEL = os.getenv(LOG_LEVEL_ENV, "WARNING").upper()
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = DEFAULT_LEVEL) -> None:
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logging.basicConfig(level=numeric, format=LOG_FORMAT, stream=sys.stderr)
    # basicConfig is a no-op once a handler exists; the level still applies.
    logging.getLogger().setLevel(numeric)


def get_logger(name: str) -> logging.Logger:
    if not logging.getLogger().handlers:
        setup_logging()
    return logging.getLogger(name)
