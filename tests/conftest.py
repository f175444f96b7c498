"""Shared fixtures: canned Semantic Scholar data, both storage backends and a test app."""

from __future__ import annotations

import copy
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from researchflow.core.config import Settings
from researchflow.core.exceptions import SemanticScholarError
from researchflow.core.security import CredentialCipher
from researchflow.main import create_app
from researchflow.storage.database import DatabaseStorage
from researchflow.storage.memory import MemoryStorage

# ── Canned upstream records ──────────────────────────────────────────────────


def make_raw_paper(paper_id: str, title: Optional[str] = None, **overrides: Any) -> Dict[str, Any]:
    raw = {
        "paperId": paper_id,
        "title": title or f"Paper {paper_id}",
        "authors": [{"authorId": f"{paper_id}-a1", "name": f"Author of {paper_id}"}],
        "abstract": f"Abstract of {paper_id}",
        "year": 2020,
        "venue": "NeurIPS",
        "citationCount": 10,
        "referenceCount": 5,
        "url": f"https://www.semanticscholar.org/paper/{paper_id}",
        "fieldsOfStudy": ["Computer Science"],
    }
    raw.update(overrides)
    return raw


class FakeScholarClient:
    """In-process stand-in for SemanticScholarClient that counts calls"""

    def __init__(self) -> None:
        self.search_results: List[Dict[str, Any]] = []
        self.search_total: Optional[int] = None
        self.papers: Dict[str, Dict[str, Any]] = {}
        self.citations: Dict[str, List[Dict[str, Any]]] = {}
        self.references: Dict[str, List[Dict[str, Any]]] = {}
        self.authors: Dict[str, Dict[str, Any]] = {}
        self.search_error: Optional[Exception] = None
        self.calls: Dict[str, int] = {"search": 0, "paper": 0, "citations": 0, "references": 0, "author": 0}
        self.search_params: List[Dict[str, Any]] = []
        self.closed = False

    async def search_papers(self, query, *, field=None, year=None, min_citations=None, offset=0, limit=100):
        self.calls["search"] += 1
        self.search_params.append(
            {"query": query, "field": field, "year": year, "min_citations": min_citations, "limit": limit}
        )
        if self.search_error is not None:
            raise self.search_error
        data = copy.deepcopy(self.search_results[:limit])
        return {"total": self.search_total if self.search_total is not None else len(data), "data": data}

    async def get_paper(self, paper_id):
        self.calls["paper"] += 1
        if paper_id not in self.papers:
            raise SemanticScholarError("Semantic Scholar API error: 404 Not Found", upstream_status=404)
        return copy.deepcopy(self.papers[paper_id])

    async def get_citations(self, paper_id, limit=20):
        self.calls["citations"] += 1
        if paper_id not in self.citations:
            raise SemanticScholarError("Semantic Scholar API error: 404 Not Found", upstream_status=404)
        return copy.deepcopy(self.citations[paper_id][:limit])

    async def get_references(self, paper_id, limit=20):
        self.calls["references"] += 1
        if paper_id not in self.references:
            raise SemanticScholarError("Semantic Scholar API error: 404 Not Found", upstream_status=404)
        return copy.deepcopy(self.references[paper_id][:limit])

    async def get_author(self, author_id):
        self.calls["author"] += 1
        if author_id not in self.authors:
            raise SemanticScholarError("Semantic Scholar API error: 404 Not Found", upstream_status=404)
        return copy.deepcopy(self.authors[author_id])

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Settable clock for cache freshness tests"""

    def __init__(self, now: Optional[datetime] = None) -> None:
        self.now = now or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> None:
        self.now = self.now + timedelta(**kwargs)


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture(params=["memory", "database"])
def storage(request):
    """Each storage-level test runs against both backends"""
    if request.param == "memory":
        backend = MemoryStorage()
    else:
        backend = DatabaseStorage.from_url("sqlite://")
    backend.initialize()
    yield backend
    backend.close()


@pytest.fixture
def scholar() -> FakeScholarClient:
    return FakeScholarClient()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        STORAGE_BACKEND="memory",
        ENCRYPTION_KEY=CredentialCipher.generate_key(),
        JWT_SECRET_KEY="test-jwt-secret",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def cipher(settings) -> CredentialCipher:
    return CredentialCipher.from_settings(settings)


@pytest.fixture
def app(settings, storage, scholar):
    return create_app(settings, storage=storage, scholar_client=scholar)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers(client):
    """Register a user without an LLM credential and return bearer headers"""
    response = client.post(
        "/api/auth/register",
        json={"email": "ada@example.com", "username": "ada", "password": "s3cret-pass"},
    )
    assert response.status_code == 201
    return {"Authorization": f"Bearer {response.json()['token']}"}
