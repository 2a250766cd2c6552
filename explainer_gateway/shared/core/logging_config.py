"""
Loguru sink configuration.
"""

import sys

from loguru import logger

from .config import Settings


def configure_logging(settings: Settings) -> None:
    """
    Replace loguru's default sink with one driven by settings.

    ``log_format == "json"`` serializes every record (including values bound
    with ``logger.contextualize``) as one JSON object per line.
    """
    logger.remove()

    serialize = settings.log_format.lower() == "json"
    logger.add(
        sys.stderr,
        level=settings.log_level.upper(),
        serialize=serialize,
        backtrace=settings.debug,
        diagnose=settings.debug,
        enqueue=False,
    )

    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level.upper(),
            serialize=serialize,
            rotation="50 MB",
            retention=5,
        )

    logger.debug(f"Logging configured: level={settings.log_level}, json={serialize}")
