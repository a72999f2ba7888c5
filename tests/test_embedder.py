"""
Embedding Client Tests
"""

import json

import httpx
import pytest

from docs_assistant.embeddings.embedder import (
    MAX_EMBED_CHARS,
    Embedder,
    EmbeddingError,
    embedding_input,
)
from docs_assistant.core.errors import UpstreamServiceError
from docs_assistant.search.models import Section


def _embedder(handler):
    return Embedder(
        api_key="sk-test",
        model="text-embedding-ada-002",
        base_url="https://llm.test/v1/",
        transport=httpx.MockTransport(handler),
    )


def _echo_handler(requests):
    def handler(request):
        payload = json.loads(request.content)
        requests.append(payload)
        data = [{"embedding": [float(len(text)), 0.5]} for text in payload["input"]]
        return httpx.Response(200, json={"data": data})

    return handler


@pytest.mark.asyncio
async def test_embed_batches_requests():
    requests = []
    embedder = _embedder(_echo_handler(requests))

    vectors = await embedder.embed(["a", "bb", "ccc"], batch_size=2)

    assert vectors == [[1.0, 0.5], [2.0, 0.5], [3.0, 0.5]]
    assert [r["input"] for r in requests] == [["a", "bb"], ["ccc"]]
    assert requests[0]["model"] == "text-embedding-ada-002"


@pytest.mark.asyncio
async def test_embed_empty_input_makes_no_request():
    requests = []
    assert await _embedder(_echo_handler(requests)).embed([]) == []
    assert requests == []


@pytest.mark.asyncio
async def test_embed_query_returns_single_vector():
    requests = []
    vector = await _embedder(_echo_handler(requests)).embed_query("hello")
    assert vector == [5.0, 0.5]


@pytest.mark.asyncio
async def test_http_error_raises_embedding_error():
    def handler(request):
        return httpx.Response(500, json={"error": "boom"})

    with pytest.raises(EmbeddingError):
        await _embedder(handler).embed(["text"])


@pytest.mark.asyncio
async def test_count_mismatch_raises():
    def handler(request):
        return httpx.Response(200, json={"data": []})

    with pytest.raises(EmbeddingError, match="received 0 vectors"):
        await _embedder(handler).embed(["text"])


@pytest.mark.asyncio
async def test_malformed_response_raises():
    def handler(request):
        return httpx.Response(200, json={"data": [{"embedding": "nope"}]})

    with pytest.raises(EmbeddingError):
        await _embedder(handler).embed(["text"])


def test_embedding_input_prefers_text():
    assert embedding_input(Section(slug="a", name="Title", text="  Body  ")) == "Body"
    assert embedding_input(Section(slug="guide/intro", text="   ")) == "intro"
    assert len(embedding_input(Section(slug="a", text="x" * (MAX_EMBED_CHARS + 10)))) == MAX_EMBED_CHARS


def test_embedding_error_is_upstream_failure():
    assert issubclass(EmbeddingError, UpstreamServiceError)
