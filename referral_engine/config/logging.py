"""
Logging configuration.

Configures loguru sinks for the engine.
"""

import sys

from loguru import logger

from referral_engine.config.settings import settings


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """
    Replace default loguru sink with configured sinks.

    Args:
        level: Log level override (defaults to settings.log_level)
        log_file: Optional file path for a rotating file sink
    """
    level = level or settings.log_level
    log_file = log_file or settings.log_file

    logger.remove()
    logger.add(sys.stderr, level=level)

    if log_file:
        logger.add(
            log_file,
            rotation="1 day",
            retention="7 days",
            level=level,
            encoding="utf-8",
        )

    logger.debug(
        "Logging configured",
        extra={"level": level, "log_file": log_file},
    )
