from fastapi import APIRouter
from researchflow.api.v1.endpoints import auth, chat, collections, papers, search

api_router = APIRouter()

api_router.include_router(
    papers.router_papers,
    prefix="/papers",
    tags=["papers"]
)

api_router.include_router(
    search.router_search,
    tags=["search"]
)

api_router.include_router(
    chat.router_chat,
    prefix="/chat",
    tags=["chat"]
)

api_router.include_router(
    collections.router,
    prefix="/collections",
    tags=["collections"]
)

api_router.include_router(
    auth.router_auth,
    prefix="/auth",
    tags=["auth"]
)
