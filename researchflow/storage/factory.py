from loguru import logger

from researchflow.core.config import Settings
from researchflow.storage.base import Storage


def build_storage(settings: Settings) -> Storage:
    """Select the storage backend named by STORAGE_BACKEND"""
    if settings.STORAGE_BACKEND == "memory":
        from researchflow.storage.memory import MemoryStorage

        logger.warning("Using in-memory storage; data is lost on restart")
        return MemoryStorage()

    from researchflow.storage.database import DatabaseStorage

    logger.info("Using database storage")
    return DatabaseStorage.from_url(settings.DATABASE_URL, echo=settings.LOG_LEVEL == "DEBUG")
