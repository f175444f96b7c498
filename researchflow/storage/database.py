"""
Relational storage backed by SQLAlchemy and the repository layer
"""
from datetime import datetime
from typing import Optional, List, Dict, Any

from loguru import logger
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from researchflow.db.base import Base
from researchflow.db.session import create_db_engine, create_session_factory
# Model modules register their tables on Base.metadata
from researchflow.models import chat, collection, connection, paper, search, user  # noqa: F401
from researchflow.repositories.chat import chat_session_repository, chat_message_repository
from researchflow.repositories.collection import collection_repository
from researchflow.repositories.connection import connection_repository
from researchflow.repositories.paper import paper_repository
from researchflow.repositories.search import search_query_repository, search_cache_repository
from researchflow.repositories.user import user_repository
from researchflow.schemas.chat import (
    ChatSessionCreate, ChatSessionRead, ChatMessageCreate, ChatMessageRead
)
from researchflow.schemas.collection import CollectionCreate, CollectionRead
from researchflow.schemas.paper import PaperCreate, PaperRead, ConnectionCreate, ConnectionRead
from researchflow.schemas.search import CachedSearch, SearchQueryCreate, SearchQueryRead
from researchflow.schemas.user import UserCreate, UserRead
from researchflow.storage.base import Storage, DuplicateRecordError


def paper_to_row(paper_in: PaperCreate) -> Dict[str, Any]:
    data = paper_in.model_dump(exclude={"authors"})
    data["authors"] = [
        author.model_dump(by_alias=True, exclude_none=True) for author in paper_in.authors
    ]
    return data


class DatabaseStorage(Storage):
    """Storage over a SQLAlchemy engine; one short-lived session per call"""

    def __init__(self, engine: Engine, session_factory: Optional[sessionmaker] = None):
        self.engine = engine
        self.session_factory = session_factory or create_session_factory(engine)

    @classmethod
    def from_url(cls, db_url: str, echo: bool = False) -> "DatabaseStorage":
        return cls(create_db_engine(db_url, echo=echo))

    def initialize(self) -> None:
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables ready")

    def close(self) -> None:
        self.engine.dispose()

    # Papers ------------------------------------------------------------------

    def get_paper(self, paper_id: str) -> Optional[PaperRead]:
        with self.session_factory() as db:
            obj = paper_repository.get_by_paper_id(db, paper_id)
            return PaperRead.model_validate(obj) if obj else None

    def create_paper(self, paper_in: PaperCreate) -> PaperRead:
        with self.session_factory() as db:
            try:
                obj = paper_repository.create(db, paper_to_row(paper_in))
            except IntegrityError as e:
                db.rollback()
                raise DuplicateRecordError(f"Paper {paper_in.paper_id} already exists") from e
            return PaperRead.model_validate(obj)

    def update_paper(self, paper_id: str, updates: Dict[str, Any]) -> Optional[PaperRead]:
        with self.session_factory() as db:
            obj = paper_repository.update_by_paper_id(db, paper_id, updates)
            return PaperRead.model_validate(obj) if obj else None

    # Connections -------------------------------------------------------------

    def create_connection(self, connection_in: ConnectionCreate) -> ConnectionRead:
        with self.session_factory() as db:
            obj = connection_repository.create(db, connection_in.model_dump())
            return ConnectionRead.model_validate(obj)

    def get_connections(self, paper_id: str) -> List[ConnectionRead]:
        with self.session_factory() as db:
            return [
                ConnectionRead.model_validate(obj)
                for obj in connection_repository.get_for_paper(db, paper_id)
            ]

    # Search cache ------------------------------------------------------------

    def get_cached_search(self, query_hash: str) -> Optional[CachedSearch]:
        with self.session_factory() as db:
            obj = search_cache_repository.get_by_hash(db, query_hash)
            return CachedSearch.model_validate(obj) if obj else None

    def save_cached_search(self, entry: CachedSearch) -> CachedSearch:
        with self.session_factory() as db:
            obj = search_cache_repository.upsert(db, entry.model_dump())
            return CachedSearch.model_validate(obj)

    def delete_cached_search(self, query_hash: str) -> None:
        with self.session_factory() as db:
            search_cache_repository.delete_by_hash(db, query_hash)

    def delete_expired_searches(self, now: datetime) -> int:
        with self.session_factory() as db:
            return search_cache_repository.delete_expired(db, now)

    # Search history ----------------------------------------------------------

    def create_search_query(self, query_in: SearchQueryCreate) -> SearchQueryRead:
        with self.session_factory() as db:
            obj = search_query_repository.create(db, query_in.model_dump())
            return SearchQueryRead.model_validate(obj)

    def get_recent_searches(self, user_id: Optional[int] = None, limit: int = 10) -> List[SearchQueryRead]:
        with self.session_factory() as db:
            return [
                SearchQueryRead.model_validate(obj)
                for obj in search_query_repository.get_recent(db, user_id=user_id, limit=limit)
            ]

    # Users -------------------------------------------------------------------

    def create_user(self, user_in: UserCreate) -> UserRead:
        with self.session_factory() as db:
            try:
                obj = user_repository.create(db, user_in.model_dump())
            except IntegrityError as e:
                db.rollback()
                raise DuplicateRecordError("User already exists") from e
            return UserRead.model_validate(obj)

    def get_user(self, user_id: int) -> Optional[UserRead]:
        with self.session_factory() as db:
            obj = user_repository.get(db, user_id)
            return UserRead.model_validate(obj) if obj else None

    def get_user_by_email(self, email: str) -> Optional[UserRead]:
        with self.session_factory() as db:
            obj = user_repository.get_by_email(db, email)
            return UserRead.model_validate(obj) if obj else None

    def get_user_by_username(self, username: str) -> Optional[UserRead]:
        with self.session_factory() as db:
            obj = user_repository.get_by_username(db, username)
            return UserRead.model_validate(obj) if obj else None

    def update_user_credentials(self, user_id: int, llm_api_key: str, llm_base_url: str) -> Optional[UserRead]:
        with self.session_factory() as db:
            obj = user_repository.get(db, user_id)
            if obj is None:
                return None
            obj = user_repository.update(db, obj, {
                "llm_api_key": llm_api_key,
                "llm_base_url": llm_base_url,
            })
            return UserRead.model_validate(obj)

    # Chat --------------------------------------------------------------------

    def create_chat_session(self, session_in: ChatSessionCreate) -> ChatSessionRead:
        with self.session_factory() as db:
            obj = chat_session_repository.create(db, session_in.model_dump())
            return ChatSessionRead.model_validate(obj)

    def get_chat_session(self, session_id: int) -> Optional[ChatSessionRead]:
        with self.session_factory() as db:
            obj = chat_session_repository.get(db, session_id)
            return ChatSessionRead.model_validate(obj) if obj else None

    def get_user_chat_sessions(self, user_id: int) -> List[ChatSessionRead]:
        with self.session_factory() as db:
            return [
                ChatSessionRead.model_validate(obj)
                for obj in chat_session_repository.get_by_user(db, user_id)
            ]

    def add_chat_message(self, message_in: ChatMessageCreate) -> ChatMessageRead:
        with self.session_factory() as db:
            obj = chat_message_repository.create(db, message_in.model_dump())
            return ChatMessageRead.model_validate(obj)

    def get_chat_messages(self, session_id: int) -> List[ChatMessageRead]:
        with self.session_factory() as db:
            return [
                ChatMessageRead.model_validate(obj)
                for obj in chat_message_repository.get_by_session(db, session_id)
            ]

    # Collections -------------------------------------------------------------

    def create_collection(self, collection_in: CollectionCreate) -> CollectionRead:
        with self.session_factory() as db:
            obj = collection_repository.create(db, collection_in.model_dump())
            return CollectionRead.model_validate(obj)

    def get_collection(self, collection_id: int) -> Optional[CollectionRead]:
        with self.session_factory() as db:
            obj = collection_repository.get(db, collection_id)
            return CollectionRead.model_validate(obj) if obj else None

    def get_user_collections(self, user_id: int) -> List[CollectionRead]:
        with self.session_factory() as db:
            return [
                CollectionRead.model_validate(obj)
                for obj in collection_repository.get_by_user(db, user_id)
            ]

    def add_paper_to_collection(self, collection_id: int, paper_id: str) -> None:
        with self.session_factory() as db:
            collection_repository.add_paper(db, collection_id, paper_id)

    def get_collection_paper_ids(self, collection_id: int) -> List[str]:
        with self.session_factory() as db:
            return collection_repository.get_paper_ids(db, collection_id)
