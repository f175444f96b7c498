"""
Process-local storage for development and tests
"""
import itertools
import threading
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any

from researchflow.schemas.chat import (
    ChatSessionCreate, ChatSessionRead, ChatMessageCreate, ChatMessageRead
)
from researchflow.schemas.collection import CollectionCreate, CollectionRead
from researchflow.schemas.paper import PaperCreate, PaperRead, ConnectionCreate, ConnectionRead
from researchflow.schemas.search import CachedSearch, SearchQueryCreate, SearchQueryRead
from researchflow.schemas.user import UserCreate, UserRead
from researchflow.storage.base import Storage, DuplicateRecordError


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryStorage(Storage):
    """Dict-backed storage with the same semantics as DatabaseStorage"""

    def __init__(self):
        self._lock = threading.RLock()
        self._ids = {
            name: itertools.count(1)
            for name in ("paper", "connection", "search", "user", "session", "message", "collection")
        }
        self._papers: Dict[str, PaperRead] = {}
        self._connections: List[ConnectionRead] = []
        self._cache: Dict[str, CachedSearch] = {}
        self._searches: List[SearchQueryRead] = []
        self._users: Dict[int, UserRead] = {}
        self._sessions: Dict[int, ChatSessionRead] = {}
        self._messages: List[ChatMessageRead] = []
        self._collections: Dict[int, CollectionRead] = {}
        self._collection_papers: List[tuple] = []

    def _next_id(self, name: str) -> int:
        return next(self._ids[name])

    # Papers ------------------------------------------------------------------

    def get_paper(self, paper_id: str) -> Optional[PaperRead]:
        with self._lock:
            return self._papers.get(paper_id)

    def create_paper(self, paper_in: PaperCreate) -> PaperRead:
        with self._lock:
            if paper_in.paper_id in self._papers:
                raise DuplicateRecordError(f"Paper {paper_in.paper_id} already exists")
            paper = PaperRead(id=self._next_id("paper"), created_at=_now(), **paper_in.model_dump())
            self._papers[paper.paper_id] = paper
            return paper

    def update_paper(self, paper_id: str, updates: Dict[str, Any]) -> Optional[PaperRead]:
        with self._lock:
            paper = self._papers.get(paper_id)
            if paper is None:
                return None
            changes = {k: v for k, v in updates.items() if v is not None and k in PaperRead.model_fields}
            data = paper.model_dump()
            data.update(changes)
            paper = PaperRead.model_validate(data)
            self._papers[paper_id] = paper
            return paper

    # Connections -------------------------------------------------------------

    def create_connection(self, connection_in: ConnectionCreate) -> ConnectionRead:
        with self._lock:
            connection = ConnectionRead(id=self._next_id("connection"), **connection_in.model_dump())
            self._connections.append(connection)
            return connection

    def get_connections(self, paper_id: str) -> List[ConnectionRead]:
        with self._lock:
            return [
                c for c in self._connections
                if c.source_paper_id == paper_id or c.target_paper_id == paper_id
            ]

    # Search cache ------------------------------------------------------------

    def get_cached_search(self, query_hash: str) -> Optional[CachedSearch]:
        with self._lock:
            return self._cache.get(query_hash)

    def save_cached_search(self, entry: CachedSearch) -> CachedSearch:
        with self._lock:
            self._cache[entry.query_hash] = entry
            return entry

    def delete_cached_search(self, query_hash: str) -> None:
        with self._lock:
            self._cache.pop(query_hash, None)

    def delete_expired_searches(self, now: datetime) -> int:
        with self._lock:
            expired = [key for key, entry in self._cache.items() if entry.expires_at < now]
            for key in expired:
                del self._cache[key]
            return len(expired)

    # Search history ----------------------------------------------------------

    def create_search_query(self, query_in: SearchQueryCreate) -> SearchQueryRead:
        with self._lock:
            record = SearchQueryRead(id=self._next_id("search"), created_at=_now(), **query_in.model_dump())
            self._searches.append(record)
            return record

    def get_recent_searches(self, user_id: Optional[int] = None, limit: int = 10) -> List[SearchQueryRead]:
        with self._lock:
            rows = [s for s in self._searches if user_id is None or s.user_id == user_id]
            return list(reversed(rows))[:limit]

    # Users -------------------------------------------------------------------

    def create_user(self, user_in: UserCreate) -> UserRead:
        with self._lock:
            for existing in self._users.values():
                if existing.email == user_in.email or existing.username == user_in.username:
                    raise DuplicateRecordError("User already exists")
            now = _now()
            user = UserRead(id=self._next_id("user"), created_at=now, updated_at=now, **user_in.model_dump())
            self._users[user.id] = user
            return user

    def get_user(self, user_id: int) -> Optional[UserRead]:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserRead]:
        with self._lock:
            return next((u for u in self._users.values() if u.email == email), None)

    def get_user_by_username(self, username: str) -> Optional[UserRead]:
        with self._lock:
            return next((u for u in self._users.values() if u.username == username), None)

    def update_user_credentials(self, user_id: int, llm_api_key: str, llm_base_url: str) -> Optional[UserRead]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            user = user.model_copy(update={
                "llm_api_key": llm_api_key,
                "llm_base_url": llm_base_url,
                "updated_at": _now(),
            })
            self._users[user_id] = user
            return user

    # Chat --------------------------------------------------------------------

    def create_chat_session(self, session_in: ChatSessionCreate) -> ChatSessionRead:
        with self._lock:
            now = _now()
            session = ChatSessionRead(
                id=self._next_id("session"), created_at=now, updated_at=now, **session_in.model_dump()
            )
            self._sessions[session.id] = session
            return session

    def get_chat_session(self, session_id: int) -> Optional[ChatSessionRead]:
        with self._lock:
            return self._sessions.get(session_id)

    def get_user_chat_sessions(self, user_id: int) -> List[ChatSessionRead]:
        with self._lock:
            sessions = [s for s in self._sessions.values() if s.user_id == user_id]
            return sorted(sessions, key=lambda s: (s.created_at, s.id), reverse=True)

    def add_chat_message(self, message_in: ChatMessageCreate) -> ChatMessageRead:
        with self._lock:
            message = ChatMessageRead(id=self._next_id("message"), created_at=_now(), **message_in.model_dump())
            self._messages.append(message)
            return message

    def get_chat_messages(self, session_id: int) -> List[ChatMessageRead]:
        with self._lock:
            return [m for m in self._messages if m.session_id == session_id]

    # Collections -------------------------------------------------------------

    def create_collection(self, collection_in: CollectionCreate) -> CollectionRead:
        with self._lock:
            now = _now()
            collection = CollectionRead(
                id=self._next_id("collection"), created_at=now, updated_at=now, **collection_in.model_dump()
            )
            self._collections[collection.id] = collection
            return collection

    def get_collection(self, collection_id: int) -> Optional[CollectionRead]:
        with self._lock:
            return self._collections.get(collection_id)

    def get_user_collections(self, user_id: int) -> List[CollectionRead]:
        with self._lock:
            collections = [c for c in self._collections.values() if c.user_id == user_id]
            return sorted(collections, key=lambda c: (c.created_at, c.id), reverse=True)

    def add_paper_to_collection(self, collection_id: int, paper_id: str) -> None:
        with self._lock:
            self._collection_papers.append((collection_id, paper_id))

    def get_collection_paper_ids(self, collection_id: int) -> List[str]:
        with self._lock:
            return [paper_id for cid, paper_id in self._collection_papers if cid == collection_id]
