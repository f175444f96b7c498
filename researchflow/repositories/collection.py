from typing import List
from sqlalchemy.orm import Session

from researchflow.models.collection import Collection, CollectionPaper
from researchflow.repositories.base import BaseRepository

class CollectionRepository(BaseRepository[Collection]):
    """Repository for Collection operations"""

    def __init__(self):
        super().__init__(Collection)

    def get_by_user(self, db: Session, user_id: int) -> List[Collection]:
        return db.query(Collection)\
            .filter(Collection.user_id == user_id)\
            .order_by(Collection.created_at.desc(), Collection.id.desc())\
            .all()

    def add_paper(self, db: Session, collection_id: int, paper_id: str) -> CollectionPaper:
        membership = CollectionPaper(collection_id=collection_id, paper_id=paper_id)
        db.add(membership)
        db.commit()
        db.refresh(membership)
        return membership

    def get_paper_ids(self, db: Session, collection_id: int) -> List[str]:
        rows = db.query(CollectionPaper.paper_id)\
            .filter(CollectionPaper.collection_id == collection_id)\
            .order_by(CollectionPaper.id)\
            .all()
        return [row.paper_id for row in rows]


collection_repository = CollectionRepository()
