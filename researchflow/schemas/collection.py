"""
Pydantic Schemas for Collection Request/Response
"""
from pydantic import Field
from typing import Optional, List
from datetime import datetime

from researchflow.schemas.common import CamelModel


class CollectionBase(CamelModel):
    name: str = Field(..., min_length=1, max_length=255, description="Collection name")
    description: Optional[str] = Field(None, description="Collection description")
    is_public: bool = Field(default=False)


class CollectionRequest(CollectionBase):
    pass


class CollectionCreate(CollectionBase):
    user_id: int


class CollectionRead(CollectionCreate):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CollectionPaperRequest(CamelModel):
    paper_id: str = Field(..., min_length=1)


class CollectionPapers(CamelModel):
    collection_id: int
    paper_ids: List[str]


class CollectionStats(CamelModel):
    collection_id: int
    total_papers: int
