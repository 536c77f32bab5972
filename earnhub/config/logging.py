"""
Logging configuration.

Configures loguru sinks. Sets up log rotation and retention policies.
"""

import sys

from loguru import logger

from earnhub.config.settings import settings


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Configure stderr and rotating file sinks."""
    level = level or settings.log_level
    log_file = log_file or settings.log_file

    logger.remove()
    logger.add(sys.stderr, level=level)
    logger.add(
        log_file,
        rotation="1 day",
        retention="7 days",
        level=level,
        encoding="utf-8",
    )

    logger.info(f"EarnHub logging configured (level={level}, file={log_file})")
