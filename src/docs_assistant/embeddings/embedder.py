"""
Section Embeddings

Turns documentation sections and chat questions into vectors through an
OpenAI-compatible `/embeddings` endpoint. Ingestion embeds whole batches of
sections; the retriever embeds one question per chat turn. Both paths share
the same model so that query and section vectors are comparable in pgvector.
"""

from __future__ import annotations

from typing import List, Sequence, Optional
import logging
import httpx

from ..config import settings
from ..core.errors import UpstreamServiceError
from ..search.models import Section

logger = logging.getLogger("docs.embedder")

# text-embedding-ada-002 accepts 8191 tokens; ~4 chars per token
MAX_EMBED_CHARS = 25000


def embedding_input(section: Section) -> str:
    """
    Text embedded for a section: its body, or its title when the body is empty.
    """
    text = section.text.strip() or section.title
    return text[:MAX_EMBED_CHARS]


class EmbeddingError(UpstreamServiceError):
    """The embeddings endpoint failed or answered with something unusable."""


class Embedder:
    """
    Embeds section texts and questions.

    One `httpx.AsyncClient` is opened per call, so an instance can be shared
    between requests.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key or settings.openai_api_key.get_secret_value()
        self.model = model or settings.embedding_model
        self.url = (base_url or str(settings.openai_base_url)).rstrip("/") + "/embeddings"
        self.timeout = timeout or settings.http_timeout
        self._transport = transport

    async def embed_query(self, text: str) -> List[float]:
        """Vector for one chat question."""
        embeddings = await self.embed([text])
        if len(embeddings) != 1:
            raise EmbeddingError(
                f"Expected 1 vector for the question, got {len(embeddings)}."
            )
        return embeddings[0]

    async def embed(
        self,
        texts: Sequence[str],
        batch_size: int = 20,
    ) -> List[List[float]]:
        """
        Vectors for `texts`, in input order.

        Parameters
        ----------
        texts : Sequence[str]
            Usually `embedding_input(section)` for each section being ingested.
        batch_size : int
            Inputs sent per request.

        Raises
        ------
        EmbeddingError
            On a transport error, an error status, or a response whose vector
            count differs from the batch.
        """
        if not texts:
            return []

        vectors: List[List[float]] = []
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            for offset in range(0, len(texts), batch_size):
                batch = list(texts[offset : offset + batch_size])

                try:
                    response = await client.post(
                        self.url,
                        json={"model": self.model, "input": batch},
                        headers=headers,
                    )
                    response.raise_for_status()
                except httpx.HTTPError as exc:
                    logger.error(
                        "Embedding %d section texts at offset %d failed: %s",
                        len(batch),
                        offset,
                        exc,
                    )
                    raise EmbeddingError(
                        f"Embeddings request failed: {type(exc).__name__}"
                    ) from exc

                batch_vectors = self._parse_vectors(response.json())
                if len(batch_vectors) != len(batch):
                    raise EmbeddingError(
                        f"Sent {len(batch)} texts, received {len(batch_vectors)} vectors."
                    )
                vectors.extend(batch_vectors)

        logger.debug("Embedded %d texts with %s", len(vectors), self.model)
        return vectors

    @staticmethod
    def _parse_vectors(body: dict) -> List[List[float]]:
        # {"data": [{"embedding": [...]}, ...]}
        records = body.get("data")
        if not isinstance(records, list):
            raise EmbeddingError("Embeddings response has no 'data' list.")

        vectors: List[List[float]] = []
        for position, record in enumerate(records):
            vector = record.get("embedding") if isinstance(record, dict) else None
            if not isinstance(vector, list) or not all(
                isinstance(x, (float, int)) for x in vector
            ):
                raise EmbeddingError(f"No numeric vector in record {position}.")
            vectors.append([float(x) for x in vector])

        return vectors
