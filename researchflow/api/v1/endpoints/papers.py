"""
API Endpoints for Papers: search, detail, citation lookups and graph
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from loguru import logger

from researchflow.api.deps import (
    get_connection_service, get_graph_service, get_optional_user,
    get_paper_service, get_search_service, get_settings,
)
from researchflow.core.config import Settings
from researchflow.core.exceptions import NotFoundError, ResearchFlowError, UpstreamError
from researchflow.schemas.graph import GraphResponse
from researchflow.schemas.paper import PaperRead
from researchflow.schemas.search import SearchRequest, SearchResponse
from researchflow.schemas.user import UserRead
from researchflow.services.connection_service import ConnectionService
from researchflow.services.graph_service import GraphService
from researchflow.services.paper_service import PaperService
from researchflow.services.search_service import SearchService

router_papers = APIRouter()


@router_papers.post("/search", response_model=SearchResponse)
async def search_papers(
    search_request: SearchRequest,
    search_service: SearchService = Depends(get_search_service),
    user: Optional[UserRead] = Depends(get_optional_user),
):
    """
    Search papers, serving repeated searches from the result cache

    - **query**: Search text
    - **field / year / minCitations**: Optional filters
    - **offset / limit**: Page of the cached result set to return
    """
    try:
        return await search_service.search(search_request, user_id=user.id if user else None)
    except Exception as e:
        logger.exception(f"Search failed for {search_request.query!r}: {e}")
        raise UpstreamError("Failed to search papers")


@router_papers.get("/{paper_id}", response_model=PaperRead)
async def get_paper(
    paper_id: str,
    paper_service: PaperService = Depends(get_paper_service),
):
    """Get a stored paper, fetching it from Semantic Scholar on first request"""
    try:
        return await paper_service.get_or_fetch(paper_id)
    except NotFoundError:
        raise
    except ResearchFlowError as e:
        logger.error(f"Fetching paper {paper_id} failed: {e}")
        raise UpstreamError("Failed to fetch paper")


@router_papers.get("/{paper_id}/citations")
async def get_citations(
    paper_id: str,
    limit: int = Query(20, ge=1, le=1000),
    connection_service: ConnectionService = Depends(get_connection_service),
):
    """Papers citing this paper; each citation is recorded as a graph edge"""
    try:
        papers = await connection_service.record_citations(paper_id, limit=limit)
    except NotFoundError:
        raise
    except ResearchFlowError as e:
        logger.error(f"Fetching citations for {paper_id} failed: {e}")
        raise UpstreamError("Failed to fetch citations")
    return {"papers": papers}


@router_papers.get("/{paper_id}/references")
async def get_references(
    paper_id: str,
    limit: int = Query(20, ge=1, le=1000),
    connection_service: ConnectionService = Depends(get_connection_service),
):
    """Papers referenced by this paper; each reference is recorded as a graph edge"""
    try:
        papers = await connection_service.record_references(paper_id, limit=limit)
    except NotFoundError:
        raise
    except ResearchFlowError as e:
        logger.error(f"Fetching references for {paper_id} failed: {e}")
        raise UpstreamError("Failed to fetch references")
    return {"papers": papers}


@router_papers.get("/{paper_id}/graph", response_model=GraphResponse)
async def get_paper_graph(
    paper_id: str,
    depth: int = Query(1, ge=0),
    graph_service: GraphService = Depends(get_graph_service),
    settings: Settings = Depends(get_settings),
):
    """Citation neighbourhood of a paper from recorded connections"""
    return graph_service.build_neighborhood(paper_id, min(depth, settings.GRAPH_MAX_DEPTH))
