"""
Semantic Retriever

Embeds a question and queries the vector store for the closest documentation
sections within one namespace.

Retrieval fails soft: any embedding or vector store error is reported to the
`on_error` callback and the caller receives an empty passage list, so a chat
turn degrades to "no sources" instead of failing.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence

from .embedder import Embedder
from ..search.models import RetrievedPassage

logger = logging.getLogger("docs.retriever")


PASSAGE_FIELDS = ("slug", "name", "text", "type")

ErrorCallback = Callable[[Exception], None]


class SupportsVectorQuery(Protocol):
    async def query(self, vector: List[float], namespace: str, top_k: int = 20) -> Sequence[Any]:
        ...


def _log_retrieval_error(exc: Exception) -> None:
    logger.error("Semantic retrieval failed: %s", exc, exc_info=exc)


def project_passage(metadata: Optional[Mapping[str, Any]]) -> RetrievedPassage:
    """Keep only the metadata fields needed for citation and packing."""
    metadata = metadata or {}
    return RetrievedPassage(**{key: metadata.get(key) for key in PASSAGE_FIELDS})


class SemanticRetriever:
    def __init__(
        self,
        embedder: Embedder,
        vector_store: SupportsVectorQuery,
        top_k: int = 20,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._embedder = embedder
        self._store = vector_store
        self.top_k = top_k
        self._on_error = on_error or _log_retrieval_error

    async def retrieve(self, query: str, namespace: str) -> List[RetrievedPassage]:
        """
        Return up to `top_k` passages most similar to `query`.

        Never raises for upstream failures; returns [] instead.
        """
        try:
            vector = await self._embedder.embed_query(query)
            matches = await self._store.query(vector, namespace=namespace, top_k=self.top_k)
        except Exception as exc:
            self._on_error(exc)
            return []

        passages = [project_passage(match.metadata) for match in matches]
        logger.info("Found %d sections in namespace '%s'", len(passages), namespace)
        return passages
