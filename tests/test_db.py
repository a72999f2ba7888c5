"""
Database Model Tests

Non-DB checks of the pgvector schema and the vector store's input handling.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from docs_assistant.config import settings
from docs_assistant.db import SectionEmbedding, VectorStore
from docs_assistant.search.models import Section


class TestSectionEmbeddingModel:

    def test_section_embedding_creation(self):
        row = SectionEmbedding(
            namespace="docs",
            slug="setup#install",
            name=None,
            text="Run npm install",
            type="h2",
            embedding=[0.0] * settings.embedding_dimensions,
        )

        assert row.namespace == "docs"
        assert row.slug == "setup#install"
        assert row.type == "h2"

    def test_vector_dimension_matches_settings(self):
        column = SectionEmbedding.__table__.c.embedding
        assert column.type.dim == settings.embedding_dimensions

    def test_namespace_slug_index(self):
        names = {index.name for index in SectionEmbedding.__table__.indexes}
        assert "idx_section_embedding_namespace_slug" in names


class TestVectorStore:

    @pytest.mark.asyncio
    async def test_upsert_nothing_is_noop(self):
        session = AsyncMock()
        store = VectorStore(session)

        assert await store.upsert_sections("docs", [], []) == 0
        session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upsert_rejects_mismatched_embeddings(self):
        store = VectorStore(AsyncMock())

        with pytest.raises(ValueError):
            await store.upsert_sections("docs", [Section(slug="a")], [])

    @pytest.mark.asyncio
    async def test_upsert_keeps_last_duplicate_slug(self):
        session = MagicMock()
        session.execute = AsyncMock()
        session.flush = AsyncMock()
        store = VectorStore(session)
        sections = [
            Section(slug="setup", text="old text"),
            Section(slug="deploy", text="ship it"),
            Section(slug="setup", text="new text"),
        ]

        count = await store.upsert_sections("docs", sections, [[0.1], [0.2], [0.3]])

        assert count == 2
        rows = [c.args[0] for c in session.add.call_args_list]
        assert [(r.slug, r.text, r.embedding) for r in rows] == [
            ("setup", "new text", [0.3]),
            ("deploy", "ship it", [0.2]),
        ]
        session.execute.assert_awaited_once()
        session.flush.assert_awaited_once()
