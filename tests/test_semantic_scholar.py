"""Tests for the Semantic Scholar client against a mocked transport."""

from __future__ import annotations

import httpx
import pytest

from researchflow.clients.semantic_scholar import SemanticScholarClient
from researchflow.core.exceptions import SemanticScholarError

BASE_URL = "https://api.semanticscholar.org/graph/v1"


def make_client(handler, api_key=None) -> SemanticScholarClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SemanticScholarClient(http, base_url=BASE_URL, api_key=api_key, user_agent="ResearchFlow/test")


@pytest.mark.asyncio
async def test_search_sends_filters_and_headers() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["headers"] = request.headers
        return httpx.Response(200, json={"total": 1, "offset": 0, "data": [{"paperId": "P1"}]})

    client = make_client(handler, api_key="s2-key")
    data = await client.search_papers(
        "transformer", field="Computer Science", year=2017, min_citations=100, limit=50
    )
    await client.aclose()

    assert data["data"] == [{"paperId": "P1"}]
    assert seen["path"] == "/graph/v1/paper/search"
    assert seen["params"]["query"] == "transformer"
    assert seen["params"]["fieldsOfStudy"] == "Computer Science"
    assert seen["params"]["year"] == "2017"
    assert seen["params"]["minCitationCount"] == "100"
    assert seen["params"]["limit"] == "50"
    assert seen["headers"]["x-api-key"] == "s2-key"
    assert seen["headers"]["user-agent"] == "ResearchFlow/test"


@pytest.mark.asyncio
async def test_search_without_filters_omits_them() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        seen["headers"] = request.headers
        return httpx.Response(200, json={"total": 0, "data": []})

    client = make_client(handler)
    await client.search_papers("transformer")

    assert "fieldsOfStudy" not in seen["params"]
    assert "year" not in seen["params"]
    assert "minCitationCount" not in seen["params"]
    assert "x-api-key" not in seen["headers"]


@pytest.mark.asyncio
async def test_citations_unwrap_data() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/graph/v1/paper/P1/citations"
        return httpx.Response(200, json={"data": [{"isInfluential": True, "citingPaper": {"paperId": "P2"}}]})

    client = make_client(handler)
    citations = await client.get_citations("P1", limit=5)

    assert citations == [{"isInfluential": True, "citingPaper": {"paperId": "P2"}}]


@pytest.mark.asyncio
async def test_error_status_is_raised_with_upstream_status() -> None:
    client = make_client(lambda request: httpx.Response(404, json={"error": "Paper not found"}))

    with pytest.raises(SemanticScholarError) as exc_info:
        await client.get_paper("missing")

    assert exc_info.value.upstream_status == 404


@pytest.mark.asyncio
async def test_transport_failure_has_no_upstream_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = make_client(handler)

    with pytest.raises(SemanticScholarError) as exc_info:
        await client.get_author("a1")

    assert exc_info.value.upstream_status is None
