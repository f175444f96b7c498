from typing import List

from fastapi import APIRouter, Depends, Query

from researchflow.api.deps import get_cache_service, get_current_user, get_search_service
from researchflow.schemas.search import CacheClearResponse, SearchHistoryResponse, SearchQueryRead
from researchflow.schemas.user import UserRead
from researchflow.services.cache_service import CacheService
from researchflow.services.search_service import SearchService

router_search = APIRouter()


@router_search.get("/search/history", response_model=SearchHistoryResponse)
async def get_search_history(
    limit: int = Query(20, ge=1, le=100),
    user: UserRead = Depends(get_current_user),
    search_service: SearchService = Depends(get_search_service),
):
    '''Searches made by the current user, newest first'''
    return SearchHistoryResponse(search_history=search_service.history(user_id=user.id, limit=limit))


@router_search.get("/searches/recent", response_model=List[SearchQueryRead])
async def get_recent_searches(
    limit: int = Query(10, ge=1, le=100),
    search_service: SearchService = Depends(get_search_service),
):
    '''Most recent searches across all users'''
    return search_service.history(limit=limit)


@router_search.post("/cache/clear", response_model=CacheClearResponse)
async def clear_cache(cache_service: CacheService = Depends(get_cache_service)):
    '''Delete expired search cache entries'''
    return CacheClearResponse(cleared=cache_service.clear_expired())
