import asyncio
from typing import Any, Dict, List, Optional

from loguru import logger

from researchflow.clients.semantic_scholar import SemanticScholarClient
from researchflow.core.exceptions import PaperNotFoundError, SemanticScholarError
from researchflow.schemas.paper import PaperCreate, PaperRead
from researchflow.storage.base import Storage, DuplicateRecordError


def paper_from_record(raw: Dict[str, Any], authors: Optional[List[Dict[str, Any]]] = None) -> PaperCreate:
    """Map a Semantic Scholar paper object onto a PaperCreate with defaults"""
    journal = raw.get("journal") or {}
    external_ids = raw.get("externalIds") or {}

    return PaperCreate(
        paper_id=raw["paperId"],
        title=raw.get("title") or "Untitled",
        authors=[a for a in (authors if authors is not None else raw.get("authors") or []) if a],
        abstract=raw.get("abstract"),
        year=raw.get("year"),
        venue=raw.get("venue") or journal.get("name"),
        venue_id=journal.get("id"),
        h5_index=journal.get("h5Index"),
        citation_count=raw.get("citationCount") or 0,
        reference_count=raw.get("referenceCount") or 0,
        url=raw.get("url"),
        doi=raw.get("doi") or external_ids.get("DOI"),
        fields_of_study=raw.get("fieldsOfStudy") or [],
        keywords=[],
    )


class PaperService:
    """First-write-wins paper upsert with optional author enrichment"""

    def __init__(
        self,
        storage: Storage,
        client: SemanticScholarClient,
        author_enrichment_limit: int = 3,
    ):
        self.storage = storage
        self.client = client
        self.author_enrichment_limit = author_enrichment_limit

    async def ensure_paper(self, raw: Dict[str, Any], enrich: bool = False) -> PaperRead:
        """Return the stored paper for raw["paperId"], inserting it on first sighting.

        A paper that already exists is returned unchanged, whatever raw holds.
        """
        paper_id = raw["paperId"]
        existing = self.storage.get_paper(paper_id)
        if existing is not None:
            return existing

        authors = raw.get("authors") or []
        if enrich and authors:
            authors = await self.enrich_authors(authors)

        try:
            return self.storage.create_paper(paper_from_record(raw, authors))
        except DuplicateRecordError:
            # Lost an insert race; the winner's row stands
            logger.debug(f"Paper {paper_id} inserted concurrently, reusing stored row")
            winner = self.storage.get_paper(paper_id)
            if winner is None:
                raise
            return winner

    async def enrich_authors(self, authors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Add institution and h-index to the first few authors, concurrently"""
        head = authors[:self.author_enrichment_limit]
        tail = authors[self.author_enrichment_limit:]
        enriched = await asyncio.gather(*(self._enrich_author(author) for author in head))
        return list(enriched) + list(tail)

    async def _enrich_author(self, author: Dict[str, Any]) -> Dict[str, Any]:
        affiliations = author.get("affiliations") or []
        author_id = author.get("authorId")

        if author_id:
            data = None
            try:
                data = await self.client.get_author(author_id)
            except SemanticScholarError as e:
                logger.debug(f"Author enrichment failed for {author_id}: {e}")
            if isinstance(data, dict):
                upstream = data.get("affiliations") or []
                return {
                    **author,
                    "institution": upstream[0] if upstream else (affiliations[0] if affiliations else None),
                    "hIndex": data.get("hIndex"),
                    "affiliations": upstream or author.get("affiliations"),
                }

        return {
            **author,
            "institution": affiliations[0] if affiliations else None,
            "hIndex": None,
        }

    async def get_or_fetch(self, paper_id: str) -> PaperRead:
        """Stored paper, or fetch it from Semantic Scholar and store it"""
        paper = self.storage.get_paper(paper_id)
        if paper is not None:
            return paper

        try:
            raw = await self.client.get_paper(paper_id)
        except SemanticScholarError as e:
            if e.upstream_status is None:
                raise
            raise PaperNotFoundError() from e

        if not raw.get("paperId"):
            raise PaperNotFoundError()
        return await self.ensure_paper(raw)

    def update_paper(self, paper_id: str, updates: Dict[str, Any]) -> PaperRead:
        paper = self.storage.update_paper(paper_id, updates)
        if paper is None:
            raise PaperNotFoundError()
        return paper
