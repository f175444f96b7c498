from typing import List, Optional

from loguru import logger

from researchflow.core.exceptions import NotFoundError
from researchflow.schemas.collection import CollectionCreate, CollectionRead, CollectionPapers
from researchflow.storage.base import Storage


class CollectionService:
    """User-owned paper collections"""

    def __init__(self, storage: Storage):
        self.storage = storage

    def create(self, user_id: int, name: str, description: Optional[str], is_public: bool) -> CollectionRead:
        collection = self.storage.create_collection(CollectionCreate(
            user_id=user_id, name=name, description=description, is_public=is_public,
        ))
        logger.info(f"Created collection {collection.id} for user {user_id}")
        return collection

    def list_for_user(self, user_id: int) -> List[CollectionRead]:
        return self.storage.get_user_collections(user_id)

    def get_visible(self, user_id: int, collection_id: int) -> CollectionRead:
        """Collections are visible to their owner, and to everyone when public"""
        collection = self.storage.get_collection(collection_id)
        if collection is None or (collection.user_id != user_id and not collection.is_public):
            raise NotFoundError("Collection not found")
        return collection

    def get_owned(self, user_id: int, collection_id: int) -> CollectionRead:
        collection = self.storage.get_collection(collection_id)
        if collection is None or collection.user_id != user_id:
            raise NotFoundError("Collection not found")
        return collection

    def add_paper(self, user_id: int, collection_id: int, paper_id: str) -> CollectionPapers:
        self.get_owned(user_id, collection_id)
        if paper_id not in self.storage.get_collection_paper_ids(collection_id):
            self.storage.add_paper_to_collection(collection_id, paper_id)
        return self.papers(user_id, collection_id)

    def papers(self, user_id: int, collection_id: int) -> CollectionPapers:
        self.get_visible(user_id, collection_id)
        return CollectionPapers(
            collection_id=collection_id,
            paper_ids=self.storage.get_collection_paper_ids(collection_id),
        )
