"""
SQLAlchemy Models for Research Papers
"""
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, JSON, Index
)
from sqlalchemy.sql import func

from researchflow.db.base import Base


class Paper(Base):
    """Research paper metadata, keyed by its Semantic Scholar id"""
    __tablename__ = "papers"

    id = Column(Integer, primary_key=True, index=True)

    # Semantic Scholar Info
    paper_id = Column(String(100), nullable=False, unique=True)
    title = Column(Text, nullable=False)
    authors = Column(JSON, nullable=False, default=list)  # [{authorId, name, affiliations, institution, hIndex}]
    abstract = Column(Text, nullable=True)
    year = Column(Integer, nullable=True)

    # Venue
    venue = Column(Text, nullable=True)
    venue_id = Column(String(100), nullable=True)
    h5_index = Column(Integer, nullable=True)

    # Counts
    citation_count = Column(Integer, default=0)
    reference_count = Column(Integer, default=0)

    # External References
    url = Column(String(512), nullable=True)
    doi = Column(String(255), nullable=True)
    fields_of_study = Column(JSON, default=list)
    keywords = Column(JSON, default=list)

    # Metadata
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index('idx_paper_paper_id', 'paper_id'),
    )
