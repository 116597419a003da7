"""Loguru setup shared by the commands."""

import sys

from loguru import logger


def configure_logging(verbose: bool = False) -> None:
    """Send engine logs to stderr; ``--verbose`` shows per-module detail."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO", format="<level>{level: <8}</level> {message}")
