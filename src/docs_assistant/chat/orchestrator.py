"""
Chat Orchestrator

Decides per request how the prompt is built and hands it to the language
model:

- first turn (no additional messages): semantic retrieval on the first user
  message, retrieval-mode packing, retrieved passages reported as sources;
- follow-up turn (additional messages supplied): follow-up packing, no
  retrieval;
- semantic search: retrieval only, no model call.

Cancellation is cooperative: an optional async `is_aborted` check is polled
before retrieval, before the model call, and between streamed chunks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable, List, Optional

from .packer import ContextPacker, PackedPrompt
from ..api.models import ChatRequest
from ..core.errors import RequestAborted
from ..embeddings.retriever import SemanticRetriever
from ..llm.client import LLMClient
from ..llm.tokenizer import Tokenizer, context_window_for
from ..search.models import RetrievedPassage

logger = logging.getLogger("docs.chat")

AbortCheck = Callable[[], Awaitable[bool]]


async def _raise_if_aborted(is_aborted: Optional[AbortCheck], stage: str) -> None:
    if is_aborted is not None and await is_aborted():
        logger.info("Chat request aborted before %s", stage)
        raise RequestAborted(f"aborted before {stage}")


@dataclass
class ChatTurn:
    """A prepared chat turn, ready to stream from the language model."""
    prompt: PackedPrompt
    sources: List[RetrievedPassage] = field(default_factory=list)
    retrieved: bool = False
    _llm: Optional[LLMClient] = None
    _temperature: float = 0.5
    _is_aborted: Optional[AbortCheck] = None
    _deltas: Optional[AsyncIterator[str]] = field(default=None, repr=False)
    _first: Optional[str] = field(default=None, repr=False)

    async def start(self) -> None:
        """
        Open the model stream and wait for its first delta.

        Upstream failures surface here, before any response bytes are sent.

        Raises
        ------
        RequestAborted
            If the caller went away before the model call.
        LLMError
            If the model request fails.
        """
        if self._deltas is not None:
            return

        await _raise_if_aborted(self._is_aborted, "model call")

        messages = [m.model_dump() for m in self.prompt.messages]
        self._deltas = self._llm.stream_chat(
            messages,
            temperature=self._temperature,
            is_aborted=self._is_aborted,
        )
        try:
            self._first = await self._deltas.__anext__()
        except StopAsyncIteration:
            self._first = None

    async def stream(self) -> AsyncIterator[str]:
        """Yield assistant text deltas, opening the model stream if needed."""
        await self.start()

        if self._first is not None:
            yield self._first
        async for delta in self._deltas:
            yield delta


class ChatOrchestrator:
    def __init__(
        self,
        retriever: SemanticRetriever,
        llm: LLMClient,
        tokenizer: Tokenizer,
        model: str,
        temperature: float = 0.5,
        reserved_tokens: int = 20,
    ) -> None:
        self._retriever = retriever
        self._llm = llm
        self._temperature = temperature
        self.packer = ContextPacker(
            tokenizer,
            context_window=context_window_for(model),
            reserved_tokens=reserved_tokens,
        )

    async def semantic_search(self, query: str, namespace: str) -> List[RetrievedPassage]:
        """Retrieve passages only; the language model is not called."""
        return await self._retriever.retrieve(query, namespace)

    async def prepare(
        self,
        request: ChatRequest,
        is_aborted: Optional[AbortCheck] = None,
    ) -> ChatTurn:
        """
        Build the prompt for one chat turn.

        Raises
        ------
        RequestAborted
            If `is_aborted()` reports true before the turn is ready.
        """
        if request.additional_messages:
            prompt = self.packer.pack_follow_up(request.messages, request.additional_messages)
            return self._turn(prompt, sources=[], retrieved=False, is_aborted=is_aborted)

        await _raise_if_aborted(is_aborted, "retrieval")

        question = next((m.content for m in request.messages if m.role == "user"), None)
        sources: List[RetrievedPassage] = []
        if question is not None:
            sources = await self._retriever.retrieve(question, request.namespace)

        await _raise_if_aborted(is_aborted, "packing")

        prompt = self.packer.pack_with_context(request.messages, sources)
        logger.info(
            "Prepared chat turn: %d sources retrieved, %d packed, %d tokens",
            len(sources),
            len(prompt.passages),
            prompt.token_count,
        )
        return self._turn(prompt, sources=sources, retrieved=True, is_aborted=is_aborted)

    def _turn(
        self,
        prompt: PackedPrompt,
        sources: List[RetrievedPassage],
        retrieved: bool,
        is_aborted: Optional[AbortCheck],
    ) -> ChatTurn:
        return ChatTurn(
            prompt=prompt,
            sources=sources,
            retrieved=retrieved,
            _llm=self._llm,
            _temperature=self._temperature,
            _is_aborted=is_aborted,
        )
