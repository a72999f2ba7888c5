"""
Database Package

Provides SQLAlchemy async session management and model definitions
for PostgreSQL with pgvector.
"""

from .session import get_async_session, init_db, async_engine, AsyncSessionLocal
from .models import Base, SectionEmbedding
from .vector_store import VectorStore, VectorMatch

__all__ = [
    "get_async_session",
    "init_db",
    "async_engine",
    "AsyncSessionLocal",
    "Base",
    "SectionEmbedding",
    "VectorStore",
    "VectorMatch",
]
