"""
Request dependencies: shared components from app.state, services and auth
"""
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from researchflow.clients.semantic_scholar import SemanticScholarClient
from researchflow.core.config import Settings
from researchflow.core.exceptions import AuthenticationError
from researchflow.core.security import CredentialCipher, decode_access_token
from researchflow.schemas.user import UserRead
from researchflow.services.auth_service import AuthService
from researchflow.services.cache_service import CacheService
from researchflow.services.chat_service import ChatService
from researchflow.services.collection_service import CollectionService
from researchflow.services.connection_service import ConnectionService
from researchflow.services.graph_service import GraphService
from researchflow.services.paper_service import PaperService
from researchflow.services.search_service import SearchService
from researchflow.services.single_flight import SingleFlight
from researchflow.storage.base import Storage

bearer_scheme = HTTPBearer(auto_error=False)


# ============================================================================
# Application components
# ============================================================================

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_scholar_client(request: Request) -> SemanticScholarClient:
    return request.app.state.scholar_client


def get_single_flight(request: Request) -> SingleFlight:
    return request.app.state.single_flight


def get_cipher(request: Request) -> CredentialCipher:
    return request.app.state.cipher


# ============================================================================
# Services
# ============================================================================

def get_cache_service(
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> CacheService:
    return CacheService(storage, ttl_seconds=settings.SEARCH_CACHE_TTL_SECONDS)


def get_paper_service(
    storage: Storage = Depends(get_storage),
    client: SemanticScholarClient = Depends(get_scholar_client),
    settings: Settings = Depends(get_settings),
) -> PaperService:
    return PaperService(storage, client, author_enrichment_limit=settings.AUTHOR_ENRICHMENT_LIMIT)


def get_connection_service(
    storage: Storage = Depends(get_storage),
    client: SemanticScholarClient = Depends(get_scholar_client),
    paper_service: PaperService = Depends(get_paper_service),
) -> ConnectionService:
    return ConnectionService(storage, client, paper_service)


def get_graph_service(storage: Storage = Depends(get_storage)) -> GraphService:
    return GraphService(storage)


def get_search_service(
    storage: Storage = Depends(get_storage),
    client: SemanticScholarClient = Depends(get_scholar_client),
    cache: CacheService = Depends(get_cache_service),
    paper_service: PaperService = Depends(get_paper_service),
    single_flight: SingleFlight = Depends(get_single_flight),
    settings: Settings = Depends(get_settings),
) -> SearchService:
    return SearchService(
        storage,
        client,
        cache,
        paper_service,
        single_flight,
        fetch_limit=settings.SEARCH_FETCH_LIMIT,
        preview_size=settings.SEARCH_HISTORY_PREVIEW_SIZE,
    )


def get_chat_service(
    storage: Storage = Depends(get_storage),
    cipher: CredentialCipher = Depends(get_cipher),
    settings: Settings = Depends(get_settings),
) -> ChatService:
    return ChatService(storage, cipher, settings)


def get_auth_service(
    storage: Storage = Depends(get_storage),
    cipher: CredentialCipher = Depends(get_cipher),
    chat_service: ChatService = Depends(get_chat_service),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(storage, cipher, chat_service, settings)


def get_collection_service(storage: Storage = Depends(get_storage)) -> CollectionService:
    return CollectionService(storage)


# ============================================================================
# Authentication
# ============================================================================

def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    storage: Storage = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> Optional[UserRead]:
    """The bearer token's user, or None when no valid token is sent"""
    if credentials is None:
        return None
    try:
        user_id = decode_access_token(credentials.credentials, settings)
    except AuthenticationError:
        return None
    user = storage.get_user(user_id)
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(user: Optional[UserRead] = Depends(get_optional_user)) -> UserRead:
    if user is None:
        raise AuthenticationError("Not authenticated")
    return user
