from pydantic import Field, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from researchflow.schemas.common import CamelModel


class SearchRequest(CamelModel):
    query: str = Field(..., min_length=1, description="Search text")
    field: Optional[str] = Field(None, description="Field of study filter")
    year: Optional[int] = Field(None, description="Publication year filter")
    min_citations: Optional[int] = Field(None, ge=0, description="Minimum citation count")
    offset: int = Field(default=0, ge=0)
    limit: int = Field(default=20, ge=1, le=100)

    @field_validator("query")
    def query_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Query is required")
        return v

    @field_validator("field", mode="before")
    def empty_field_is_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class SearchResponse(CamelModel):
    papers: List[Dict[str, Any]]
    total: int
    offset: int
    next: Optional[int] = None
    cached: bool


class CachedSearch(CamelModel):
    query_hash: str
    query: str
    results: List[Dict[str, Any]] = Field(default_factory=list)
    total: int = 0
    created_at: datetime
    expires_at: datetime


class SearchQueryCreate(CamelModel):
    user_id: Optional[int] = None
    query: str
    field: Optional[str] = None
    year: Optional[int] = None
    min_citations: Optional[int] = None
    result_count: int = 0
    results_preview: List[Dict[str, Any]] = Field(default_factory=list)


class SearchQueryRead(SearchQueryCreate):
    id: int
    created_at: Optional[datetime] = None


class SearchHistoryResponse(CamelModel):
    search_history: List[SearchQueryRead]


class CacheClearResponse(CamelModel):
    cleared: int
