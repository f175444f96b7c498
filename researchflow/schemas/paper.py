from pydantic import Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

from researchflow.schemas.common import CamelModel

ConnectionType = Literal["citation", "reference", "semantic"]


class AuthorInfo(CamelModel):
    author_id: Optional[str] = None
    name: str = ""
    affiliations: Optional[List[str]] = None
    institution: Optional[str] = None
    h_index: Optional[int] = None

    @field_validator("name", mode="before")
    def name_not_null(cls, v):
        return v or ""


class PaperBase(CamelModel):
    paper_id: str = Field(..., description="Semantic Scholar paper ID")
    title: str = Field(default="Untitled", description="Paper title")
    authors: List[AuthorInfo] = Field(default_factory=list)
    abstract: Optional[str] = None
    year: Optional[int] = None
    venue: Optional[str] = None
    venue_id: Optional[str] = None
    h5_index: Optional[int] = None
    citation_count: int = 0
    reference_count: int = 0
    url: Optional[str] = None
    doi: Optional[str] = None
    fields_of_study: List[str] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)


class PaperCreate(PaperBase):
    pass


class PaperRead(PaperBase):
    id: int
    created_at: Optional[datetime] = None


class ConnectionCreate(CamelModel):
    source_paper_id: str
    target_paper_id: str
    connection_type: ConnectionType
    strength: int = 1


class ConnectionRead(ConnectionCreate):
    id: int
