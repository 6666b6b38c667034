"""
Logging setup for the loguru sink.
"""

import sys

from loguru import logger

from spotterhub.core.config import settings


def setup_logging(level: str | None = None) -> None:
    """
    Configure loguru to write to stderr at the configured level.

    Args:
        level: Override for ``settings.log_level``
    """
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or settings.log_level).upper(),
        backtrace=settings.debug,
        diagnose=settings.debug,
    )
