from typing import Any, Dict, List

from loguru import logger

from researchflow.clients.semantic_scholar import SemanticScholarClient
from researchflow.core.exceptions import NotFoundError, SemanticScholarError
from researchflow.schemas.paper import ConnectionCreate, ConnectionRead, ConnectionType
from researchflow.services.paper_service import PaperService
from researchflow.storage.base import Storage


def neighbour_record(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Edge lookups do not request abstracts; store them as empty"""
    return {**raw, "abstract": raw.get("abstract") or ""}


class ConnectionService:
    """Records citation/reference edges observed from Semantic Scholar.

    Edges are inserted unconditionally, so a repeated lookup stores the same
    edge again; GraphService collapses duplicates when reading.
    """

    def __init__(self, storage: Storage, client: SemanticScholarClient, paper_service: PaperService):
        self.storage = storage
        self.client = client
        self.paper_service = paper_service

    def record_connection(
        self,
        source_paper_id: str,
        target_paper_id: str,
        connection_type: ConnectionType,
        influential: bool = False,
    ) -> ConnectionRead:
        return self.storage.create_connection(ConnectionCreate(
            source_paper_id=source_paper_id,
            target_paper_id=target_paper_id,
            connection_type=connection_type,
            strength=2 if influential else 1,
        ))

    async def record_citations(self, paper_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        """Store papers citing paper_id plus a citing -> cited edge for each"""
        try:
            citations = await self.client.get_citations(paper_id, limit=limit)
        except SemanticScholarError as e:
            if e.upstream_status is None:
                raise
            raise NotFoundError("Citations not found") from e

        citing_papers = []
        for citation in citations:
            citing = citation.get("citingPaper")
            if not citing or not citing.get("paperId"):
                continue
            await self.paper_service.ensure_paper(neighbour_record(citing))
            self.record_connection(
                citing["paperId"], paper_id, "citation", bool(citation.get("isInfluential"))
            )
            citing_papers.append(citing)

        logger.info(f"Recorded {len(citing_papers)} citations for {paper_id}")
        return citing_papers

    async def record_references(self, paper_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        """Store papers referenced by paper_id plus a citing -> cited edge for each"""
        try:
            references = await self.client.get_references(paper_id, limit=limit)
        except SemanticScholarError as e:
            if e.upstream_status is None:
                raise
            raise NotFoundError("References not found") from e

        cited_papers = []
        for reference in references:
            cited = reference.get("citedPaper")
            if not cited or not cited.get("paperId"):
                continue
            await self.paper_service.ensure_paper(neighbour_record(cited))
            self.record_connection(
                paper_id, cited["paperId"], "reference", bool(reference.get("isInfluential"))
            )
            cited_papers.append(cited)

        logger.info(f"Recorded {len(cited_papers)} references for {paper_id}")
        return cited_papers
