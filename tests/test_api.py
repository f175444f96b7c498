"""End-to-end tests through the HTTP API."""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage
from langchain_core.outputs import ChatGeneration, LLMResult

from researchflow.core.config import Settings
from researchflow.core.exceptions import ConfigurationError, SemanticScholarError
from researchflow.main import create_app
from researchflow.schemas.search import SearchRequest
from researchflow.services.cache_service import CacheService
from researchflow.services.chat_service import ChatService
from researchflow.services.paper_service import PaperService
from researchflow.services.search_service import SearchService
from researchflow.services.single_flight import SingleFlight
from researchflow.storage.memory import MemoryStorage

from conftest import FakeScholarClient, make_raw_paper


def seed_search(scholar, count=25, total=None):
    scholar.search_results = [make_raw_paper(f"P{i}") for i in range(count)]
    scholar.search_total = total


# ── App wiring ───────────────────────────────────────────────────────────────


def test_health_and_root(client) -> None:
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "healthy"
    assert "X-Process-Time" in health.headers

    assert client.get("/").json()["docs"] == "/api/docs"


def test_startup_fails_without_encryption_key(settings) -> None:
    app = create_app(
        settings.model_copy(update={"ENCRYPTION_KEY": None}),
        storage=MemoryStorage(),
        scholar_client=FakeScholarClient(),
    )

    with pytest.raises(ConfigurationError):
        with TestClient(app):
            pass


def test_shutdown_closes_scholar_client(settings, scholar) -> None:
    with TestClient(create_app(settings, storage=MemoryStorage(), scholar_client=scholar)):
        pass
    assert scholar.closed


# ── Search (scenario A) ──────────────────────────────────────────────────────


def test_repeated_search_is_served_from_cache(client, scholar) -> None:
    seed_search(scholar, count=3)

    first = client.post("/api/papers/search", json={"query": "transformer"})
    second = client.post("/api/papers/search", json={"query": "transformer"})

    assert first.status_code == 200
    assert first.json()["cached"] is False
    assert second.json()["cached"] is True
    assert second.json()["papers"] == first.json()["papers"]
    assert scholar.calls["search"] == 1


def test_search_pages_slice_cached_results(client, scholar) -> None:
    seed_search(scholar, count=25, total=1234)

    first = client.post("/api/papers/search", json={"query": "transformer", "limit": 10}).json()
    second = client.post("/api/papers/search", json={"query": "transformer", "offset": 20, "limit": 10}).json()

    assert [p["paperId"] for p in first["papers"]] == [f"P{i}" for i in range(10)]
    assert first["next"] == 10
    assert first["total"] == 1234
    assert [p["paperId"] for p in second["papers"]] == [f"P{i}" for i in range(20, 25)]
    assert second["next"] is None
    assert second["offset"] == 20
    assert second["total"] == 1234
    assert second["cached"] is True
    assert scholar.calls["search"] == 1
    assert scholar.search_params[0]["limit"] == 100


class GatedScholarClient(FakeScholarClient):
    """Holds search requests open until released"""

    def __init__(self) -> None:
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

    async def search_papers(self, query, **kwargs):
        self.entered.set()
        await self.release.wait()
        return await super().search_papers(query, **kwargs)


@pytest.mark.asyncio
async def test_concurrent_identical_searches_fetch_once(storage) -> None:
    scholar = GatedScholarClient()
    seed_search(scholar, count=3)
    service = SearchService(
        storage, scholar, CacheService(storage), PaperService(storage, scholar), SingleFlight()
    )
    request = SearchRequest(query="transformer")

    first = asyncio.create_task(service.search(request))
    await scholar.entered.wait()
    second = asyncio.create_task(service.search(request))
    await asyncio.sleep(0)
    scholar.release.set()
    results = await asyncio.gather(first, second)

    assert scholar.calls["search"] == 1
    assert results[0].papers == results[1].papers
    assert [p["paperId"] for p in results[0].papers] == ["P0", "P1", "P2"]


def test_search_filters_form_separate_cache_entries(client, scholar) -> None:
    seed_search(scholar, count=2)

    client.post("/api/papers/search", json={"query": "transformer"})
    response = client.post("/api/papers/search", json={"query": "transformer", "year": 2017, "minCitations": 5})

    assert response.json()["cached"] is False
    assert scholar.calls["search"] == 2
    assert scholar.search_params[1]["year"] == 2017
    assert scholar.search_params[1]["min_citations"] == 5


def test_search_stores_papers(client, scholar, storage) -> None:
    seed_search(scholar, count=2)

    client.post("/api/papers/search", json={"query": "transformer"})

    assert storage.get_paper("P0") is not None
    assert storage.get_paper("P1") is not None


@pytest.mark.parametrize("body", [{}, {"query": ""}, {"query": "   "}, {"query": "x", "limit": 0}])
def test_invalid_search_is_bad_request(client, body) -> None:
    response = client.post("/api/papers/search", json=body)

    assert response.status_code == 400
    assert "error" in response.json()


def test_upstream_failure_is_generic_500(client, scholar) -> None:
    scholar.search_error = SemanticScholarError("boom", upstream_status=503)

    response = client.post("/api/papers/search", json={"query": "transformer"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to search papers"}


def test_search_history_requires_auth_and_is_per_user(client, scholar, auth_headers) -> None:
    seed_search(scholar, count=7)

    client.post("/api/papers/search", json={"query": "anonymous search"})
    client.post("/api/papers/search", json={"query": "transformer", "field": "Computer Science"},
                headers=auth_headers)

    assert client.get("/api/search/history").status_code == 401

    history = client.get("/api/search/history", headers=auth_headers).json()["searchHistory"]
    assert [h["query"] for h in history] == ["transformer"]
    assert history[0]["field"] == "Computer Science"
    assert history[0]["resultCount"] == 7
    assert len(history[0]["resultsPreview"]) == 5
    assert history[0]["resultsPreview"][0] == {"paperId": "P0", "title": "Paper P0"}

    recent = client.get("/api/searches/recent").json()
    assert [h["query"] for h in recent] == ["transformer", "anonymous search"]


def test_cache_clear_reports_count(client) -> None:
    response = client.post("/api/cache/clear")

    assert response.status_code == 200
    assert response.json() == {"cleared": 0}


# ── Papers and graph (scenario B) ────────────────────────────────────────────


def test_paper_detail_fetches_once(client, scholar) -> None:
    scholar.papers["P1"] = make_raw_paper("P1", title="Attention")

    first = client.get("/api/papers/P1")
    second = client.get("/api/papers/P1")

    assert first.status_code == 200
    assert first.json()["paperId"] == "P1"
    assert first.json()["citationCount"] == 10
    assert second.json()["title"] == "Attention"
    assert scholar.calls["paper"] == 1


def test_unknown_paper_is_404(client) -> None:
    response = client.get("/api/papers/unknown")

    assert response.status_code == 404
    assert response.json() == {"error": "Paper not found"}


def test_citation_lookup_then_graph(client, scholar) -> None:
    scholar.papers["P1"] = make_raw_paper("P1")
    scholar.citations["P1"] = [
        {"isInfluential": True, "citingPaper": make_raw_paper("P2")},
        {"isInfluential": False, "citingPaper": make_raw_paper("P3")},
    ]
    scholar.references["P2"] = [{"isInfluential": False, "citedPaper": make_raw_paper("P4")}]

    client.get("/api/papers/P1")
    citations = client.get("/api/papers/P1/citations")
    client.get("/api/papers/P2/references")
    graph = client.get("/api/papers/P1/graph", params={"depth": 1}).json()

    assert [p["paperId"] for p in citations.json()["papers"]] == ["P2", "P3"]
    assert sorted(n["id"] for n in graph["nodes"]) == ["P1", "P2", "P3"]
    assert sorted((l["source"], l["target"], l["strength"]) for l in graph["links"]) == [
        ("P2", "P1", 2), ("P3", "P1", 1),
    ]


def test_graph_depth_zero_is_root_only_and_default_is_one(client, scholar) -> None:
    scholar.papers["P1"] = make_raw_paper("P1")
    scholar.citations["P1"] = [{"isInfluential": False, "citingPaper": make_raw_paper("P2")}]
    client.get("/api/papers/P1")
    client.get("/api/papers/P1/citations")

    root_only = client.get("/api/papers/P1/graph", params={"depth": 0}).json()
    default = client.get("/api/papers/P1/graph").json()

    assert [n["id"] for n in root_only["nodes"]] == ["P1"]
    assert root_only["links"] == []
    assert sorted(n["id"] for n in default["nodes"]) == ["P1", "P2"]


def test_graph_depth_is_capped(client, scholar, settings) -> None:
    chain = [f"C{i}" for i in range(settings.GRAPH_MAX_DEPTH + 3)]
    for source, target in zip(chain, chain[1:]):
        scholar.references[source] = [{"isInfluential": False, "citedPaper": make_raw_paper(target)}]
        client.get(f"/api/papers/{source}/references")

    graph = client.get(f"/api/papers/{chain[0]}/graph", params={"depth": 50}).json()

    assert sorted(n["id"] for n in graph["nodes"]) == sorted(chain[1:settings.GRAPH_MAX_DEPTH + 1])


def test_citations_for_unknown_paper_is_404(client) -> None:
    response = client.get("/api/papers/unknown/citations")

    assert response.status_code == 404
    assert response.json() == {"error": "Citations not found"}


# ── Auth ─────────────────────────────────────────────────────────────────────


def test_register_login_me(client) -> None:
    registered = client.post(
        "/api/auth/register",
        json={"email": "grace@example.com", "username": "grace", "password": "pw-123456"},
    )
    assert registered.status_code == 201
    assert registered.json()["user"]["hasApiKey"] is False

    by_username = client.post("/api/auth/login", json={"login": "grace", "password": "pw-123456"})
    by_email = client.post("/api/auth/login", json={"login": "grace@example.com", "password": "pw-123456"})
    assert by_username.status_code == 200
    assert by_email.status_code == 200

    token = by_email.json()["token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["username"] == "grace"
    assert "passwordHash" not in me.json()


def test_login_rejects_bad_password(client, auth_headers) -> None:
    response = client.post("/api/auth/login", json={"login": "ada", "password": "wrong"})

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid credentials"}


def test_duplicate_registration_is_rejected(client, auth_headers) -> None:
    response = client.post(
        "/api/auth/register",
        json={"email": "ada@example.com", "username": "someone", "password": "pw"},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Email already registered"}


def test_overlong_password_is_bad_request(client) -> None:
    response = client.post(
        "/api/auth/register",
        json={"email": "long@example.com", "username": "long", "password": "x" * 80},
    )

    assert response.status_code == 400
    assert "72 bytes" in response.json()["error"]


def test_invalid_token_is_401(client) -> None:
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_api_key_is_verified_and_stored_encrypted(client, auth_headers, storage, cipher) -> None:
    with patch.object(ChatService, "verify_api_key", return_value=False):
        rejected = client.post("/api/auth/api-key", json={"apiKey": "sk-bad"}, headers=auth_headers)
    assert rejected.status_code == 400

    with patch.object(ChatService, "verify_api_key", return_value=True):
        accepted = client.post("/api/auth/api-key", json={"apiKey": "sk-good"}, headers=auth_headers)
    assert accepted.json() == {"success": True}

    user = storage.get_user_by_username("ada")
    assert user.llm_api_key != "sk-good"
    assert cipher.decrypt(user.llm_api_key) == "sk-good"
    assert client.get("/api/auth/me", headers=auth_headers).json()["hasApiKey"] is True


# ── Chat (scenario C) ────────────────────────────────────────────────────────


def start_session(client, scholar, headers):
    scholar.papers["P1"] = make_raw_paper("P1")
    client.get("/api/papers/P1")
    response = client.post("/api/chat/session", json={"paperId": "P1", "title": "About P1"}, headers=headers)
    assert response.status_code == 201
    return response.json()["session"]["id"]


def test_chat_without_credential_fails_without_reply(client, scholar, auth_headers) -> None:
    session_id = start_session(client, scholar, auth_headers)

    response = client.post(
        f"/api/chat/session/{session_id}/message", json={"content": "Summarise"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert "API key not configured" in response.json()["error"]
    messages = client.get(f"/api/chat/session/{session_id}/messages", headers=auth_headers).json()["messages"]
    assert [m["role"] for m in messages] == ["user"]


def test_chat_round_trip(client, scholar, auth_headers) -> None:
    with patch.object(ChatService, "verify_api_key", return_value=True):
        client.post("/api/auth/api-key", json={"apiKey": "sk-good"}, headers=auth_headers)
    session_id = start_session(client, scholar, auth_headers)

    class FakeLLM:
        async def agenerate(self, batches):
            return LLMResult(generations=[[ChatGeneration(message=AIMessage(content="A summary."))]])

    with patch.object(ChatService, "build_llm", return_value=FakeLLM()):
        response = client.post(
            f"/api/chat/session/{session_id}/message", json={"content": "Summarise"}, headers=auth_headers
        )

    assert response.status_code == 200
    assert response.json()["message"]["content"] == "A summary."
    sessions = client.get("/api/chat/sessions", headers=auth_headers).json()["sessions"]
    assert [s["id"] for s in sessions] == [session_id]


def test_chat_about_unknown_paper_is_404(client, auth_headers) -> None:
    response = client.post("/api/chat/session", json={"paperId": "nope", "title": "t"}, headers=auth_headers)
    assert response.status_code == 404


def test_other_users_session_is_404(client, scholar, auth_headers) -> None:
    session_id = start_session(client, scholar, auth_headers)
    other = client.post(
        "/api/auth/register", json={"email": "bob@example.com", "username": "bob", "password": "pw"}
    ).json()["token"]

    response = client.get(
        f"/api/chat/session/{session_id}/messages", headers={"Authorization": f"Bearer {other}"}
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Chat session not found"}


# ── Collections ──────────────────────────────────────────────────────────────


def test_collection_lifecycle(client, auth_headers) -> None:
    created = client.post("/api/collections", json={"name": "Reading list"}, headers=auth_headers)
    assert created.status_code == 201
    collection_id = created.json()["id"]

    client.post(f"/api/collections/{collection_id}/papers", json={"paperId": "P1"}, headers=auth_headers)
    client.post(f"/api/collections/{collection_id}/papers", json={"paperId": "P1"}, headers=auth_headers)
    papers = client.post(f"/api/collections/{collection_id}/papers", json={"paperId": "P2"}, headers=auth_headers)

    assert papers.json()["paperIds"] == ["P1", "P2"]
    stats = client.get(f"/api/collections/{collection_id}/stats", headers=auth_headers).json()
    assert stats == {"collectionId": collection_id, "totalPapers": 2}
    listed = client.get("/api/collections", headers=auth_headers).json()
    assert [c["name"] for c in listed] == ["Reading list"]
    assert client.get("/api/collections").status_code == 401
