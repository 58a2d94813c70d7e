"""
Logging configuration.

Configures loguru sinks for workers, the scheduler and maintenance scripts.
"""

import sys

from loguru import logger

from app.config.settings import settings


def setup_logging(log_file: str | None = None) -> None:
    """
    Configure loguru sinks.

    Args:
        log_file: Rotating log file path (defaults to settings.log_file)
    """
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level)
    logger.add(
        log_file or settings.log_file,
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
    )
