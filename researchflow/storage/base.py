"""
Storage contract shared by the relational and in-memory backends.

Every method returns pydantic schemas, never ORM objects, so callers cannot
tell which backend is in use.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, List, Dict, Any

from researchflow.schemas.chat import (
    ChatSessionCreate, ChatSessionRead, ChatMessageCreate, ChatMessageRead
)
from researchflow.schemas.collection import CollectionCreate, CollectionRead
from researchflow.schemas.paper import PaperCreate, PaperRead, ConnectionCreate, ConnectionRead
from researchflow.schemas.search import CachedSearch, SearchQueryCreate, SearchQueryRead
from researchflow.schemas.user import UserCreate, UserRead


class DuplicateRecordError(Exception):
    """A uniqueness constraint rejected an insert"""


class Storage(ABC):

    def initialize(self) -> None:
        """Prepare the backend (create tables, etc.)"""

    def close(self) -> None:
        """Release backend resources"""

    # Papers ------------------------------------------------------------------

    @abstractmethod
    def get_paper(self, paper_id: str) -> Optional[PaperRead]: ...

    @abstractmethod
    def create_paper(self, paper: PaperCreate) -> PaperRead:
        """Insert a paper; raises DuplicateRecordError if paper_id exists"""

    @abstractmethod
    def update_paper(self, paper_id: str, updates: Dict[str, Any]) -> Optional[PaperRead]: ...

    # Connections -------------------------------------------------------------

    @abstractmethod
    def create_connection(self, connection: ConnectionCreate) -> ConnectionRead: ...

    @abstractmethod
    def get_connections(self, paper_id: str) -> List[ConnectionRead]:
        """Edges with paper_id as source or target, in insertion order"""

    # Search cache ------------------------------------------------------------

    @abstractmethod
    def get_cached_search(self, query_hash: str) -> Optional[CachedSearch]: ...

    @abstractmethod
    def save_cached_search(self, entry: CachedSearch) -> CachedSearch:
        """Store an entry, replacing any entry with the same hash"""

    @abstractmethod
    def delete_cached_search(self, query_hash: str) -> None: ...

    @abstractmethod
    def delete_expired_searches(self, now: datetime) -> int: ...

    # Search history ----------------------------------------------------------

    @abstractmethod
    def create_search_query(self, query: SearchQueryCreate) -> SearchQueryRead: ...

    @abstractmethod
    def get_recent_searches(self, user_id: Optional[int] = None, limit: int = 10) -> List[SearchQueryRead]: ...

    # Users -------------------------------------------------------------------

    @abstractmethod
    def create_user(self, user: UserCreate) -> UserRead:
        """Insert a user; raises DuplicateRecordError on email/username clash"""

    @abstractmethod
    def get_user(self, user_id: int) -> Optional[UserRead]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[UserRead]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[UserRead]: ...

    @abstractmethod
    def update_user_credentials(self, user_id: int, llm_api_key: str, llm_base_url: str) -> Optional[UserRead]: ...

    # Chat --------------------------------------------------------------------

    @abstractmethod
    def create_chat_session(self, session: ChatSessionCreate) -> ChatSessionRead: ...

    @abstractmethod
    def get_chat_session(self, session_id: int) -> Optional[ChatSessionRead]: ...

    @abstractmethod
    def get_user_chat_sessions(self, user_id: int) -> List[ChatSessionRead]: ...

    @abstractmethod
    def add_chat_message(self, message: ChatMessageCreate) -> ChatMessageRead: ...

    @abstractmethod
    def get_chat_messages(self, session_id: int) -> List[ChatMessageRead]: ...

    # Collections -------------------------------------------------------------

    @abstractmethod
    def create_collection(self, collection: CollectionCreate) -> CollectionRead: ...

    @abstractmethod
    def get_collection(self, collection_id: int) -> Optional[CollectionRead]: ...

    @abstractmethod
    def get_user_collections(self, user_id: int) -> List[CollectionRead]: ...

    @abstractmethod
    def add_paper_to_collection(self, collection_id: int, paper_id: str) -> None: ...

    @abstractmethod
    def get_collection_paper_ids(self, collection_id: int) -> List[str]: ...
