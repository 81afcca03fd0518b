"""Logging configuration."""

from __future__ import annotations

import sys

from loguru import logger

from shellpipe.config import Settings, get_settings


def setup_logger(settings: Settings | None = None) -> None:
    """Configure application logger.

    Console output goes to standard error so it never mixes with pipeline
    output inherited on standard output.
    """
    settings = settings or get_settings()
    logger.enable("shellpipe")

    # Remove default handler
    logger.remove()

    # Add console handler
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=settings.log_level,
    )

    # Add file handler
    if settings.log_file:
        logger.add(
            settings.log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function} - {message}",
            level=settings.log_level,
            rotation=settings.log_rotation,
            retention=settings.log_retention,
            compression="zip",
        )
