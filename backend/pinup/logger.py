"""Centralized logging configuration for the review service."""

import logging
import sys

from config import DEBUG_MODE

# chatty libraries stay at WARNING even in debug mode
QUIET_LOGGERS = ("urllib3", "asyncio", "multipart")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout),
    ],
)

for _name in QUIET_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)


def get_logger(name: str | None = None):
    """Logger for a pinup module; DEBUG when PINUP_DEBUG is on, INFO otherwise"""
    level = logging.DEBUG if DEBUG_MODE else logging.INFO
    logger = logging.getLogger(name or "pinup")
    logger.setLevel(level)
    return logger
