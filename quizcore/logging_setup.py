"""
Loguru sink configuration.

Library modules only call ``logger``; entry points decide where it goes.
"""

from __future__ import annotations

import sys

from loguru import logger


def configure_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Replace loguru's default handler with the quizcore sinks."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if log_file:
        logger.add(
            log_file,
            level=level,
            rotation="10 MB",
            retention=5,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )
