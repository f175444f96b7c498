from datetime import datetime
from typing import Optional, List, Dict, Any
from sqlalchemy.orm import Session

from researchflow.models.search import SearchQuery, SearchCache
from researchflow.repositories.base import BaseRepository


class SearchQueryRepository(BaseRepository[SearchQuery]):
    """Repository for search history"""

    def __init__(self):
        super().__init__(SearchQuery)

    def get_recent(self, db: Session, user_id: Optional[int] = None, limit: int = 10) -> List[SearchQuery]:
        query = db.query(SearchQuery)

        if user_id is not None:
            query = query.filter(SearchQuery.user_id == user_id)

        return query.order_by(SearchQuery.created_at.desc(), SearchQuery.id.desc())\
            .limit(limit)\
            .all()


class SearchCacheRepository(BaseRepository[SearchCache]):
    """Repository for cached upstream search results"""

    def __init__(self):
        super().__init__(SearchCache)

    def get_by_hash(self, db: Session, query_hash: str) -> Optional[SearchCache]:
        return db.query(SearchCache).filter(SearchCache.query_hash == query_hash).first()

    def upsert(self, db: Session, obj_in: Dict[str, Any]) -> SearchCache:
        """Insert a cache row or replace the one stored under the same hash"""
        existing = self.get_by_hash(db, obj_in["query_hash"])
        if existing is None:
            return self.create(db, obj_in)

        for field, value in obj_in.items():
            setattr(existing, field, value)
        db.commit()
        db.refresh(existing)
        return existing

    def delete_by_hash(self, db: Session, query_hash: str) -> None:
        db.query(SearchCache).filter(SearchCache.query_hash == query_hash).delete()
        db.commit()

    def delete_expired(self, db: Session, now: datetime) -> int:
        deleted = db.query(SearchCache)\
            .filter(SearchCache.expires_at < now)\
            .delete(synchronize_session=False)
        db.commit()
        return deleted


search_query_repository = SearchQueryRepository()
search_cache_repository = SearchCacheRepository()
