# ============================================================================
# Paper Repository (researchflow/repositories/paper.py)
# ============================================================================
from typing import Optional, Dict, Any
from sqlalchemy.orm import Session

from researchflow.repositories.base import BaseRepository
from researchflow.models.paper import Paper


class PaperRepository(BaseRepository[Paper]):
    """Repository for Paper operations"""

    def __init__(self):
        super().__init__(Paper)

    def get_by_paper_id(self, db: Session, paper_id: str) -> Optional[Paper]:
        """Get paper by Semantic Scholar ID"""
        return db.query(Paper).filter(Paper.paper_id == paper_id).first()

    def update_by_paper_id(self, db: Session, paper_id: str, obj_in: Dict[str, Any]) -> Optional[Paper]:
        paper = self.get_by_paper_id(db, paper_id)
        if paper is None:
            return None
        return self.update(db, paper, obj_in)


paper_repository = PaperRepository()
