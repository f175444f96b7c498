"""Semantic Scholar Graph API client.

Thin async wrapper over ``httpx.AsyncClient``. Every non-success status or
transport failure is raised as ``SemanticScholarError``; nothing is retried.
"""
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from researchflow.core.config import Settings
from researchflow.core.exceptions import SemanticScholarError

# ============================================================================
# Constants
# ============================================================================

PAPER_FIELDS = (
    "paperId,title,authors,abstract,year,venue,journal,citationCount,"
    "referenceCount,url,fieldsOfStudy,externalIds"
)
EDGE_FIELDS = "contexts,intents,isInfluential,paperId,title,authors,year,venue,citationCount"
AUTHOR_FIELDS = "name,affiliations,hIndex,paperCount"


class SemanticScholarClient:
    """Async client for the paper search, paper, citation and author endpoints"""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        base_url: str = "https://api.semanticscholar.org/graph/v1",
        api_key: Optional[str] = None,
        user_agent: str = "ResearchFlow/1.0",
    ):
        self._http = http_client
        self.base_url = base_url.rstrip("/")
        self._headers = {"User-Agent": user_agent}
        if api_key:
            self._headers["x-api-key"] = api_key

    @classmethod
    def from_settings(cls, settings: Settings) -> "SemanticScholarClient":
        api_key = (
            settings.SEMANTIC_SCHOLAR_API_KEY.get_secret_value()
            if settings.SEMANTIC_SCHOLAR_API_KEY else None
        )
        return cls(
            httpx.AsyncClient(timeout=settings.SEMANTIC_SCHOLAR_TIMEOUT),
            base_url=settings.SEMANTIC_SCHOLAR_BASE_URL,
            api_key=api_key,
            user_agent=f"ResearchFlow/{settings.VERSION}",
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _get(self, path: str, params: Dict[str, Any], label: str) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            response = await self._http.get(url, params=params, headers=self._headers)
        except httpx.HTTPError as e:
            logger.error(f"Semantic Scholar {label} request failed: {e}")
            raise SemanticScholarError(f"Semantic Scholar request failed: {e}") from e

        if response.status_code != 200:
            logger.warning(f"Semantic Scholar {label} returned {response.status_code}")
            raise SemanticScholarError(
                f"Semantic Scholar API error: {response.status_code} {response.reason_phrase}",
                upstream_status=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise SemanticScholarError("Semantic Scholar returned invalid JSON") from e

    async def search_papers(
        self,
        query: str,
        *,
        field: Optional[str] = None,
        year: Optional[int] = None,
        min_citations: Optional[int] = None,
        offset: int = 0,
        limit: int = 100,
    ) -> Dict[str, Any]:
        """Return the raw search envelope ``{total, offset, next?, data}``"""
        params: Dict[str, Any] = {
            "query": query,
            "offset": offset,
            "limit": limit,
            "fields": PAPER_FIELDS,
        }
        if year:
            params["year"] = str(year)
        if field:
            params["fieldsOfStudy"] = field
        if min_citations:
            params["minCitationCount"] = str(min_citations)

        logger.info(f"Searching Semantic Scholar: {query!r}")
        return await self._get("/paper/search", params, "search")

    async def get_paper(self, paper_id: str) -> Dict[str, Any]:
        return await self._get(f"/paper/{paper_id}", {"fields": PAPER_FIELDS}, "paper")

    async def get_citations(self, paper_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        """Citation wrappers, each with ``citingPaper`` and ``isInfluential``"""
        data = await self._get(
            f"/paper/{paper_id}/citations",
            {"fields": EDGE_FIELDS, "limit": limit},
            "citations",
        )
        return data.get("data") or []

    async def get_references(self, paper_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        """Reference wrappers, each with ``citedPaper`` and ``isInfluential``"""
        data = await self._get(
            f"/paper/{paper_id}/references",
            {"fields": EDGE_FIELDS, "limit": limit},
            "references",
        )
        return data.get("data") or []

    async def get_author(self, author_id: str) -> Dict[str, Any]:
        return await self._get(f"/author/{author_id}", {"fields": AUTHOR_FIELDS}, "author")
