"""
Chat Orchestrator Tests
"""

from unittest.mock import AsyncMock

import pytest

from docs_assistant.api.models import ChatMessage, ChatRequest
from docs_assistant.chat.orchestrator import ChatOrchestrator
from docs_assistant.chat.prompts import FOLLOW_UP_SYSTEM_PROMPT
from docs_assistant.core.errors import RequestAborted
from docs_assistant.embeddings.embedder import Embedder, EmbeddingError
from docs_assistant.embeddings.retriever import SemanticRetriever
from docs_assistant.llm.client import LLMError
from docs_assistant.search.models import RetrievedPassage


class CharTokenizer:
    def encode(self, text):
        return list(text)


class FakeLLM:
    def __init__(self, deltas=("Hello", " world")):
        self.deltas = deltas
        self.calls = []

    async def stream_chat(self, messages, temperature=0.5, is_aborted=None):
        self.calls.append({"messages": messages, "temperature": temperature})
        for delta in self.deltas:
            if is_aborted is not None and await is_aborted():
                raise RequestAborted("stream aborted")
            yield delta


PASSAGES = [
    RetrievedPassage(slug="setup", name="Setup", text="Run npm install", type="page"),
]


@pytest.fixture
def retriever():
    mock = AsyncMock(spec=SemanticRetriever)
    mock.retrieve.return_value = list(PASSAGES)
    return mock


@pytest.fixture
def llm():
    return FakeLLM()


@pytest.fixture
def orchestrator(retriever, llm):
    return ChatOrchestrator(retriever, llm, CharTokenizer(), model="gpt-3.5-turbo-1106", temperature=0.2)


def _request(**kwargs):
    return ChatRequest(
        namespace="docs",
        messages=[ChatMessage(role="user", content="How do I install?")],
        **kwargs,
    )


async def _collect(turn):
    return [delta async for delta in turn.stream()]


@pytest.mark.asyncio
async def test_first_turn_retrieves_and_streams(orchestrator, retriever, llm):
    turn = await orchestrator.prepare(_request())

    retriever.retrieve.assert_awaited_once_with("How do I install?", "docs")
    assert turn.retrieved is True
    assert turn.sources == PASSAGES
    assert await _collect(turn) == ["Hello", " world"]

    sent = llm.calls[0]["messages"]
    assert sent[0]["role"] == "system"
    assert "Run npm install" in sent[1]["content"]
    assert llm.calls[0]["temperature"] == 0.2


@pytest.mark.asyncio
async def test_follow_up_skips_retrieval(orchestrator, retriever, llm):
    additional = [ChatMessage(role="user", content="Page markdown")]

    turn = await orchestrator.prepare(_request(additional_messages=additional))

    assert retriever.retrieve.await_count == 0
    assert turn.retrieved is False
    assert turn.sources == []
    assert [m.content for m in turn.prompt.messages] == [
        FOLLOW_UP_SYSTEM_PROMPT,
        "Page markdown",
        "How do I install?",
    ]


@pytest.mark.asyncio
async def test_retrieval_failure_yields_zero_sources(llm):
    embedder = AsyncMock(spec=Embedder)
    embedder.embed_query.side_effect = EmbeddingError("provider down")
    errors = []
    retriever = SemanticRetriever(embedder, AsyncMock(), on_error=errors.append)
    orchestrator = ChatOrchestrator(retriever, llm, CharTokenizer(), model="gpt-3.5-turbo-1106")

    turn = await orchestrator.prepare(_request())

    assert len(errors) == 1
    assert turn.retrieved is True
    assert turn.sources == []
    assert turn.prompt.passages == []
    assert await _collect(turn) == ["Hello", " world"]


@pytest.mark.asyncio
async def test_abort_before_retrieval(orchestrator, retriever):
    is_aborted = AsyncMock(return_value=True)

    with pytest.raises(RequestAborted):
        await orchestrator.prepare(_request(), is_aborted=is_aborted)

    retriever.retrieve.assert_not_awaited()


@pytest.mark.asyncio
async def test_abort_before_model_call(orchestrator, llm):
    is_aborted = AsyncMock(side_effect=[False, False, True])

    turn = await orchestrator.prepare(_request(), is_aborted=is_aborted)

    with pytest.raises(RequestAborted):
        await _collect(turn)
    assert llm.calls == []


@pytest.mark.asyncio
async def test_start_opens_model_stream_once(orchestrator, llm):
    turn = await orchestrator.prepare(_request())

    await turn.start()
    await turn.start()

    assert len(llm.calls) == 1
    assert await _collect(turn) == ["Hello", " world"]
    assert len(llm.calls) == 1


@pytest.mark.asyncio
async def test_start_surfaces_model_failure(retriever):
    class RejectingLLM:
        async def stream_chat(self, messages, temperature=0.5, is_aborted=None):
            raise LLMError("Chat completion failed with HTTP 400")
            yield

    orchestrator = ChatOrchestrator(retriever, RejectingLLM(), CharTokenizer(), model="gpt-3.5-turbo-1106")
    turn = await orchestrator.prepare(_request())

    with pytest.raises(LLMError):
        await turn.start()

@pytest.mark.asyncio
async def test_semantic_search_returns_passages(orchestrator, retriever, llm):
    passages = await orchestrator.semantic_search("install", "docs")

    assert passages == PASSAGES
    retriever.retrieve.assert_awaited_once_with("install", "docs")
    assert llm.calls == []


def test_context_window_follows_model(retriever, llm):
    known = ChatOrchestrator(retriever, llm, CharTokenizer(), model="gpt-3.5-turbo-1106")
    unknown = ChatOrchestrator(retriever, llm, CharTokenizer(), model="some-local-model")

    assert known.packer.context_window == 16385
    assert unknown.packer.context_window == 4096
