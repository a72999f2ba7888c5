"""
Embeddings Routes

This module exposes endpoints for:
- Querying vector store statistics for a namespace
- Embedding documentation sections into a namespace
- Deleting all embeddings of a namespace

These endpoints are designed to be invoked by the documentation build (or the
`scripts/index_docs.py` CLI) to keep the semantic retrieval layer in sync with
the published docs. Every route requires an admin token with the
`embeddings` scope.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Annotated, List
import logging

from .models import (
    EmbeddingStatsResponse,
    EmbeddingUpsertRequest,
    OperationResult,
)
from .dependencies import get_embedder, get_vector_store
from ..auth.models import ServiceContext
from ..auth.security import require_scopes
from ..core.errors import InvalidNamespaceError
from ..db.vector_store import VectorStore
from ..embeddings.embedder import Embedder, embedding_input
from ..namespaces import validate_namespace

logger = logging.getLogger("docs.embeddings")

router = APIRouter(prefix="/embeddings", tags=["embeddings"])


# ---------------------------------------------------------------------
# Helper Functions
# ---------------------------------------------------------------------

def _checked_namespace(namespace: str) -> str:
    try:
        return validate_namespace(namespace)
    except InvalidNamespaceError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------

@router.get(
    "/stats",
    response_model=EmbeddingStatsResponse,
    summary="Get embedding statistics for a namespace",
)
async def get_embedding_stats(
    namespace: Annotated[str, Query(min_length=1, max_length=128)],
    store: Annotated[VectorStore, Depends(get_vector_store)],
    caller: Annotated[ServiceContext, Depends(require_scopes("embeddings"))],
) -> EmbeddingStatsResponse:
    """
    Return vector and page counts for one namespace.
    """
    namespace = _checked_namespace(namespace)
    stats = await store.get_stats(namespace)
    return EmbeddingStatsResponse(namespace=namespace, **stats)


@router.post(
    "/sections",
    summary="Create or update section embeddings",
    response_model=OperationResult,
)
async def upsert_section_embeddings(
    req: EmbeddingUpsertRequest,
    store: Annotated[VectorStore, Depends(get_vector_store)],
    embedder: Annotated[Embedder, Depends(get_embedder)],
    caller: Annotated[ServiceContext, Depends(require_scopes("embeddings"))],
) -> OperationResult:
    """
    Create or update embeddings for documentation sections.

    Workflow
    --------
    1. Build one embedding input per section.
    2. Embed all inputs in batches.
    3. Replace existing rows with the same slug, then commit.
    """
    inputs: List[str] = [embedding_input(s) for s in req.sections]

    # Global exception handler catches embedding/database errors
    embeddings = await embedder.embed(inputs)
    count = await store.upsert_sections(req.namespace, req.sections, embeddings)
    await store.commit()

    logger.info("%s upserted %d sections into %s", caller.subject, count, req.namespace)
    return OperationResult(status="updated", count=count)


@router.delete(
    "/namespace/{namespace}",
    summary="Delete all embeddings of a namespace",
    response_model=OperationResult,
)
async def delete_namespace_embeddings(
    namespace: str,
    store: Annotated[VectorStore, Depends(get_vector_store)],
    caller: Annotated[ServiceContext, Depends(require_scopes("embeddings"))],
) -> OperationResult:
    namespace = _checked_namespace(namespace)
    count = await store.delete_namespace(namespace)
    await store.commit()
    logger.info("%s deleted %d embeddings from %s", caller.subject, count, namespace)

    return OperationResult(status="deleted", count=count)
