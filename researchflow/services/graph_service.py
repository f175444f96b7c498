"""
Citation neighbourhood assembly over recorded paper connections
"""
from typing import Dict, Set, Tuple

from researchflow.schemas.graph import GraphLink, GraphNode, GraphResponse
from researchflow.schemas.paper import ConnectionRead, PaperRead
from researchflow.storage.base import Storage

LinkKey = Tuple[str, str, str]


def node_from_paper(paper: PaperRead) -> GraphNode:
    return GraphNode(
        id=paper.paper_id,
        title=paper.title,
        authors=[author.name for author in paper.authors],
        year=paper.year,
        citation_count=paper.citation_count or 0,
        venue=paper.venue,
    )


class GraphService:

    def __init__(self, storage: Storage):
        self.storage = storage

    def build_neighborhood(self, root_id: str, max_depth: int) -> GraphResponse:
        """Depth-first walk of stored connections up to max_depth hops from root_id.

        Each paper is visited once. Papers with a stored record become nodes;
        a paper that was never stored (the root included) contributes edges
        but no node. Connections are read only from papers closer than
        max_depth, so papers at exactly max_depth are leaves. Duplicate
        connection rows collapse into one link carrying the highest strength.
        """
        visited: Set[str] = set()
        nodes: Dict[str, GraphNode] = {}
        links: Dict[LinkKey, GraphLink] = {}

        def visit(paper_id: str, depth: int) -> None:
            if paper_id in visited or depth > max_depth:
                return
            visited.add(paper_id)

            paper = self.storage.get_paper(paper_id)
            if paper is not None:
                nodes[paper_id] = node_from_paper(paper)

            if depth >= max_depth:
                return

            for conn in self.storage.get_connections(paper_id):
                self._add_link(links, conn)
                other_id = (
                    conn.target_paper_id if conn.source_paper_id == paper_id
                    else conn.source_paper_id
                )
                visit(other_id, depth + 1)

        # Recursion depth is bounded by max_depth
        visit(root_id, 0)
        return GraphResponse(nodes=list(nodes.values()), links=list(links.values()))

    @staticmethod
    def _add_link(links: Dict[LinkKey, GraphLink], conn: ConnectionRead) -> None:
        key = (conn.source_paper_id, conn.target_paper_id, conn.connection_type)
        strength = conn.strength or 1
        existing = links.get(key)
        if existing is None:
            links[key] = GraphLink(
                source=conn.source_paper_id,
                target=conn.target_paper_id,
                type=conn.connection_type,
                strength=strength,
            )
        elif strength > existing.strength:
            existing.strength = strength
