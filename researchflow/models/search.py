from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, JSON, Index
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from researchflow.db.base import Base


class SearchQuery(Base):
    """Search history entry"""
    __tablename__ = "search_queries"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Query Info
    query = Column(Text, nullable=False)
    field = Column(String(100), nullable=True)
    year = Column(Integer, nullable=True)
    min_citations = Column(Integer, nullable=True)
    result_count = Column(Integer, default=0)
    results_preview = Column(JSON, default=list)

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    user = relationship("User", back_populates="search_queries")

    __table_args__ = (
        Index('idx_search_user', 'user_id'),
        Index('idx_search_created', 'created_at'),
    )


class SearchCache(Base):
    """Full upstream result set for one normalized search request"""
    __tablename__ = "search_cache"

    id = Column(Integer, primary_key=True, index=True)
    query_hash = Column(String(64), nullable=False, unique=True)
    query = Column(Text, nullable=False)
    results = Column(JSON, nullable=False, default=list)
    total = Column(Integer, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index('idx_search_cache_expires', 'expires_at'),
    )
