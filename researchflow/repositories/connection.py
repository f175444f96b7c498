from typing import List
from sqlalchemy.orm import Session
from sqlalchemy import or_

from researchflow.models.connection import PaperConnection
from researchflow.repositories.base import BaseRepository


class ConnectionRepository(BaseRepository[PaperConnection]):
    """Repository for citation/reference edges"""

    def __init__(self):
        super().__init__(PaperConnection)

    def get_for_paper(self, db: Session, paper_id: str) -> List[PaperConnection]:
        """All edges touching a paper, in either direction"""
        return db.query(PaperConnection)\
            .filter(or_(
                PaperConnection.source_paper_id == paper_id,
                PaperConnection.target_paper_id == paper_id,
            ))\
            .order_by(PaperConnection.id)\
            .all()


connection_repository = ConnectionRepository()
