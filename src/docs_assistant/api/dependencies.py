from functools import lru_cache
from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..chat.orchestrator import ChatOrchestrator
from ..config import settings
from ..db import VectorStore, get_async_session
from ..embeddings.embedder import Embedder
from ..embeddings.retriever import SemanticRetriever
from ..llm.client import LLMClient
from ..llm.tokenizer import TiktokenTokenizer
from ..search.index_cache import JsonSearchDataLoader, SearchIndexCache
from ..search.ranker import SearchOptions


@lru_cache
def get_llm_client() -> LLMClient:
    return LLMClient()


@lru_cache
def get_embedder() -> Embedder:
    return Embedder()


@lru_cache
def get_tokenizer() -> TiktokenTokenizer:
    return TiktokenTokenizer(settings.chat_model)


@lru_cache
def get_search_cache() -> SearchIndexCache:
    # One cache per process; invalidated explicitly through the search routes
    return SearchIndexCache(
        JsonSearchDataLoader(settings.search_data_dir),
        options=SearchOptions(max_results=settings.search_max_results),
    )


async def get_vector_store(
    session: AsyncSession = Depends(get_async_session),
) -> AsyncGenerator[VectorStore, None]:
    yield VectorStore(session)


def get_orchestrator(
    vector_store: VectorStore = Depends(get_vector_store),
    embedder: Embedder = Depends(get_embedder),
    llm: LLMClient = Depends(get_llm_client),
    tokenizer: TiktokenTokenizer = Depends(get_tokenizer),
) -> ChatOrchestrator:
    retriever = SemanticRetriever(
        embedder,
        vector_store,
        top_k=settings.retrieval_top_k,
    )
    return ChatOrchestrator(
        retriever,
        llm,
        tokenizer,
        model=settings.chat_model,
        temperature=settings.chat_temperature,
        reserved_tokens=settings.context_reserved_tokens,
    )
