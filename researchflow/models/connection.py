from sqlalchemy import Column, Integer, String, Index

from researchflow.db.base import Base


class PaperConnection(Base):
    """Directed citation/reference edge between two papers.

    No uniqueness constraint: every observation of an edge is a new row.
    """
    __tablename__ = "paper_connections"

    id = Column(Integer, primary_key=True, index=True)
    source_paper_id = Column(String(100), nullable=False)
    target_paper_id = Column(String(100), nullable=False)
    connection_type = Column(String(20), nullable=False)  # citation, reference, semantic
    strength = Column(Integer, default=1)

    __table_args__ = (
        Index('idx_connection_source', 'source_paper_id'),
        Index('idx_connection_target', 'target_paper_id'),
    )
