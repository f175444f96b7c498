import sys

from loguru import logger

from researchflow.core.config import Settings


def setup_logging(settings: Settings) -> None:
    """Route loguru output to stderr and, when configured, a rotating file."""
    logger.remove()
    logger.add(sys.stderr, level=settings.LOG_LEVEL.upper(), enqueue=False)

    if settings.LOG_FILE:
        logger.add(
            settings.LOG_FILE,
            level=settings.LOG_LEVEL.upper(),
            rotation="10 MB",
            retention="14 days",
            enqueue=True,
        )
