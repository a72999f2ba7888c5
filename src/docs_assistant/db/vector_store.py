"""
Vector Store

PostgreSQL + pgvector based storage and similarity search for documentation
section embeddings, partitioned by namespace.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence, Tuple

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from .models import SectionEmbedding
from ..search.models import Section


@dataclass(frozen=True)
class VectorMatch:
    """A single similarity hit: stored metadata plus cosine distance."""
    metadata: Dict[str, Any] = field(default_factory=dict)
    distance: float = 0.0


class VectorStore:
    """
    PostgreSQL-backed vector store using pgvector for similarity search.
    """

    def __init__(self, session: AsyncSession) -> None:
        """
        Initialize with an async database session.

        Parameters
        ----------
        session : AsyncSession
            SQLAlchemy async session for database operations.
        """
        self._session = session

    async def commit(self) -> None:
        """
        Commit the current transaction.
        """
        await self._session.commit()

    async def upsert_sections(
        self,
        namespace: str,
        sections: Sequence[Section],
        embeddings: Sequence[List[float]],
    ) -> int:
        """
        Store section embeddings, replacing rows that share a slug.

        When a slug repeats within `sections`, the last occurrence wins.

        Parameters
        ----------
        namespace : str
            Namespace the sections belong to.
        sections : Sequence[Section]
            Sections to store.
        embeddings : Sequence[List[float]]
            Vector embeddings aligned with `sections`.

        Returns
        -------
        int
            Number of rows written (distinct slugs).
        """
        if not sections:
            return 0

        if len(sections) != len(embeddings):
            raise ValueError("Embedding count does not match section count.")

        latest: Dict[str, Tuple[Section, List[float]]] = {}
        for section, emb in zip(sections, embeddings):
            latest[section.slug] = (section, emb)

        await self._session.execute(
            delete(SectionEmbedding).where(
                SectionEmbedding.namespace == namespace,
                SectionEmbedding.slug.in_(list(latest)),
            )
        )

        for section, emb in latest.values():
            self._session.add(
                SectionEmbedding(
                    namespace=namespace,
                    slug=section.slug,
                    name=section.name,
                    text=section.text,
                    type=section.type,
                    embedding=emb,
                )
            )

        await self._session.flush()
        return len(latest)

    async def delete_namespace(self, namespace: str) -> int:
        """
        Remove all embeddings in a namespace.

        Returns the number of deleted rows.
        """
        stmt = delete(SectionEmbedding).where(SectionEmbedding.namespace == namespace)
        result = await self._session.execute(stmt)
        return result.rowcount

    async def query(
        self,
        vector: List[float],
        namespace: str,
        top_k: int = 20,
    ) -> List[VectorMatch]:
        """
        Return the `top_k` sections of a namespace closest to `vector`.

        Parameters
        ----------
        vector : List[float]
            Query vector.
        namespace : str
            Namespace to search in.
        top_k : int
            Number of results to return.

        Returns
        -------
        List[VectorMatch]
            Matches ordered by ascending cosine distance.
        """
        cosine_distance = SectionEmbedding.embedding.cosine_distance(vector)

        stmt = (
            select(
                SectionEmbedding.slug,
                SectionEmbedding.name,
                SectionEmbedding.text,
                SectionEmbedding.type,
                cosine_distance.label("distance"),
            )
            .where(SectionEmbedding.namespace == namespace)
            .order_by(cosine_distance)
            .limit(top_k)
        )

        result = await self._session.execute(stmt)
        rows = result.all()

        return [
            VectorMatch(
                metadata={
                    "slug": row.slug,
                    "name": row.name,
                    "text": row.text,
                    "type": row.type,
                },
                distance=float(row.distance),
            )
            for row in rows
        ]

    async def get_stats(self, namespace: str) -> Dict[str, int]:
        """
        Return vector and page counts for a namespace.
        """
        total_vectors = await self._session.scalar(
            select(func.count(SectionEmbedding.id)).where(
                SectionEmbedding.namespace == namespace
            )
        )
        total_pages = await self._session.scalar(
            select(func.count(SectionEmbedding.id)).where(
                SectionEmbedding.namespace == namespace,
                SectionEmbedding.type == "page",
            )
        )
        return {
            "total_vectors": total_vectors or 0,
            "total_pages": total_pages or 0,
        }
