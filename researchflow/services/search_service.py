"""
Service Layer - paper search through the result cache
"""
from typing import Any, Dict, List, Optional, Tuple

from loguru import logger

from researchflow.clients.semantic_scholar import SemanticScholarClient
from researchflow.schemas.search import SearchQueryCreate, SearchQueryRead, SearchRequest, SearchResponse
from researchflow.services.cache_service import CacheService, make_cache_key, paginate
from researchflow.services.paper_service import PaperService
from researchflow.services.single_flight import SingleFlight
from researchflow.storage.base import Storage


class SearchService:
    """Serves search pages from the cache, fetching upstream once per cache miss"""

    def __init__(
        self,
        storage: Storage,
        client: SemanticScholarClient,
        cache: CacheService,
        paper_service: PaperService,
        single_flight: SingleFlight,
        fetch_limit: int = 100,
        preview_size: int = 5,
    ):
        self.storage = storage
        self.client = client
        self.cache = cache
        self.paper_service = paper_service
        self.single_flight = single_flight
        self.fetch_limit = fetch_limit
        self.preview_size = preview_size

    async def search(self, request: SearchRequest, user_id: Optional[int] = None) -> SearchResponse:
        key = make_cache_key(request.query, request.field, request.year, request.min_citations)

        cached = self.cache.lookup(key)
        if cached is not None:
            results, total, hit = cached.results, cached.total, True
        else:
            results, total = await self.single_flight.run(
                key, lambda: self._fetch_and_store(key, request)
            )
            hit = False

        page, next_offset = paginate(results, request.offset, request.limit)
        self._record_history(request, user_id, results, total)

        return SearchResponse(
            papers=page,
            total=total,
            offset=request.offset,
            next=next_offset,
            cached=hit,
        )

    async def _fetch_and_store(self, key: str, request: SearchRequest) -> Tuple[List[Dict[str, Any]], int]:
        data = await self.client.search_papers(
            request.query,
            field=request.field,
            year=request.year,
            min_citations=request.min_citations,
            limit=self.fetch_limit,
        )
        papers = [p for p in data.get("data") or [] if p.get("paperId")]

        for raw in papers:
            await self.paper_service.ensure_paper(raw, enrich=True)

        total = data.get("total") or len(papers)
        self.cache.store(key, request.query, papers, total)
        logger.info(f"Cached {len(papers)} results for {request.query!r} (total {total})")
        return papers, total

    def _record_history(
        self,
        request: SearchRequest,
        user_id: Optional[int],
        results: List[Dict[str, Any]],
        total: int,
    ) -> SearchQueryRead:
        preview = [
            {"paperId": p.get("paperId"), "title": p.get("title")}
            for p in results[:self.preview_size]
        ]
        return self.storage.create_search_query(SearchQueryCreate(
            user_id=user_id,
            query=request.query,
            field=request.field,
            year=request.year,
            min_citations=request.min_citations,
            result_count=total,
            results_preview=preview,
        ))

    def history(self, user_id: Optional[int] = None, limit: int = 20) -> List[SearchQueryRead]:
        return self.storage.get_recent_searches(user_id=user_id, limit=limit)
