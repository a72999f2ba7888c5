import contextlib
import json

import pytest
from fastapi.testclient import TestClient

from docs_assistant.main import app
from docs_assistant.api.dependencies import get_search_cache
from docs_assistant.search.index_cache import JsonSearchDataLoader, SearchIndexCache


SEARCH_DATA = [
    {"slug": "setup", "name": "Setup", "text": "", "type": "page"},
    {"slug": "setup#install", "name": None, "text": "Run npm install", "type": "h2", "parent": "setup"},
    {"slug": "faq#orphan", "name": "Orphan", "text": "install troubleshooting", "type": "h2", "parent": "missing"},
]


@pytest.fixture
def search_cache(tmp_path):
    (tmp_path / "en.json").write_text(json.dumps({"searchData": SEARCH_DATA}), encoding="utf-8")
    return SearchIndexCache(JsonSearchDataLoader(tmp_path))


@pytest.fixture
def client(search_cache):
    app.dependency_overrides[get_search_cache] = lambda: search_cache

    # Mock lifespan to avoid DB connection
    @contextlib.asynccontextmanager
    async def mock_lifespan(app):
        yield

    app.router.lifespan_context = mock_lifespan

    with TestClient(app) as c:
        yield c

    app.dependency_overrides = {}


def test_search_groups_headings_under_pages(client):
    response = client.post("/search/", json={"query": "install", "key": "en"})

    assert response.status_code == 200
    results = response.json()["results"]
    kinds = {r["entry"]["slug"]: r["kind"] for r in results}
    assert kinds == {"setup": "page", "faq#orphan": "section"}

    page = next(r for r in results if r["kind"] == "page")
    assert page["entry"]["title"] == "Setup"
    assert page["entry"]["text_fragments"] == []
    assert [s["slug"] for s in page["sections"]] == ["setup#install"]

    fragments = page["sections"][0]["text_fragments"]
    assert {"text": "install", "match": True, "ellipsis": False} in fragments
    assert "".join(f["text"] for f in fragments) == "Run npm install"


def test_heading_title_falls_back_to_slug(client):
    response = client.post("/search/", json={"query": "npm", "key": "en"})

    section = response.json()["results"][0]["sections"][0]
    assert section["title"] == "setup#install"


def test_blank_query_returns_no_results(client):
    response = client.post("/search/", json={"query": "  ", "key": "en"})

    assert response.status_code == 200
    assert response.json() == {"query": "  ", "results": []}


def test_unknown_key_returns_404(client):
    response = client.post("/search/", json={"query": "install", "key": "fr"})

    assert response.status_code == 404
    assert response.json()["error"] == "search_data_not_found"


def test_invalid_key_rejected(client):
    response = client.post("/search/", json={"query": "install", "key": "../en"})
    assert response.status_code == 422


def test_cache_invalidation(client, admin_headers, search_cache):
    client.post("/search/", json={"query": "install", "key": "en"})
    assert search_cache.keys() == ["en"]

    response = client.delete("/search/cache/en", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "deleted"
    assert search_cache.keys() == []


def test_cache_invalidation_rejects_bad_key(client, admin_headers):
    response = client.delete("/search/cache/bad key", headers=admin_headers)
    assert response.status_code == 422


def test_search_needs_no_token(client):
    response = client.post("/search/", json={"query": "install", "key": "en"})
    assert response.status_code == 200


def test_cache_invalidation_requires_admin_token(client, search_cache):
    client.post("/search/", json={"query": "install", "key": "en"})

    response = client.delete("/search/cache/en")

    assert response.status_code in (401, 403)
    assert search_cache.keys() == ["en"]


def test_cache_invalidation_requires_cache_scope(client, make_token, search_cache):
    client.post("/search/", json={"query": "install", "key": "en"})
    headers = {"Authorization": f"Bearer {make_token(scopes=['embeddings'])}"}

    response = client.delete("/search/cache/en", headers=headers)

    assert response.status_code == 403
    assert search_cache.keys() == ["en"]
