"""
Search-result cache in front of the Semantic Scholar search endpoint.

Entries are keyed by a digest of the raw query and its filters and expire
after a fixed TTL. Expired entries are never served: they are deleted when
read, and clear_expired() sweeps the rest.
"""
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from researchflow.schemas.search import CachedSearch
from researchflow.storage.base import Storage

KEY_SEPARATOR = "|"

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as SQLite returns them) as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def make_cache_key(
    query: str,
    field: Optional[str] = None,
    year: Optional[int] = None,
    min_citations: Optional[int] = None,
) -> str:
    parts = [
        query,
        field or "",
        "" if year is None else str(year),
        "" if min_citations is None else str(min_citations),
    ]
    raw = KEY_SEPARATOR.join(parts)
    # Lookup key only, not a security boundary
    return hashlib.md5(raw.encode("utf-8"), usedforsecurity=False).hexdigest()


def paginate(results: List[Any], offset: int, limit: int) -> Tuple[List[Any], Optional[int]]:
    """Slice one page out of a full result list.

    Returns the page and the offset of the following page, or None when the
    page reaches the end of the list.
    """
    start = max(offset, 0)
    end = start + max(limit, 0)
    page = results[start:end]
    next_offset = end if end < len(results) else None
    return page, next_offset


class CacheService:
    """Lookup/store of full search result sets with lazy expiry"""

    def __init__(self, storage: Storage, ttl_seconds: int = 3600, clock: Clock = utcnow):
        self.storage = storage
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock

    def lookup(self, key: str) -> Optional[CachedSearch]:
        entry = self.storage.get_cached_search(key)
        if entry is None:
            logger.debug(f"Search cache miss: {key}")
            return None

        if as_utc(entry.expires_at) < self.clock():
            logger.debug(f"Search cache entry expired: {key}")
            self.storage.delete_cached_search(key)
            return None

        logger.info(f"Search cache hit: {key}")
        return entry

    def store(
        self,
        key: str,
        query: str,
        results: List[Dict[str, Any]],
        total: int,
        ttl: Optional[timedelta] = None,
    ) -> CachedSearch:
        now = self.clock()
        entry = CachedSearch(
            query_hash=key,
            query=query,
            results=results,
            total=total,
            created_at=now,
            expires_at=now + (ttl or self.ttl),
        )
        return self.storage.save_cached_search(entry)

    def clear_expired(self) -> int:
        cleared = self.storage.delete_expired_searches(self.clock())
        logger.info(f"Cleared {cleared} expired search cache entries")
        return cleared
