from typing import Optional, List

from researchflow.schemas.common import CamelModel
from researchflow.schemas.paper import ConnectionType


class GraphNode(CamelModel):
    id: str
    title: str
    authors: List[str]
    year: Optional[int] = None
    citation_count: int = 0
    venue: Optional[str] = None


class GraphLink(CamelModel):
    source: str
    target: str
    type: ConnectionType
    strength: int = 1


class GraphResponse(CamelModel):
    nodes: List[GraphNode]
    links: List[GraphLink]
