"""loguru sink setup."""

from __future__ import annotations

import sys

from loguru import logger

from flowbot.core.config.schema import LoggingConfig

_TEXT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def setup_logging(config: LoggingConfig) -> None:
    """Replace loguru's default stderr sink with the configured ones."""
    serialize = config.format == "json"
    logger.remove()
    logger.add(
        sys.stderr,
        level=config.level,
        serialize=serialize,
        format="{message}" if serialize else _TEXT_FORMAT,
        enqueue=False,
    )
    if config.file:
        logger.add(
            config.file,
            level=config.level,
            serialize=serialize,
            rotation=config.rotation,
            enqueue=True,
        )
    logger.debug(f"Logging configured: level={config.level} format={config.format}")
