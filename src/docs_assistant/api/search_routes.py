"""
Search Routes

This module defines the instant full-text search endpoints. Queries run
against an in-memory index built lazily per search data key and shared by all
requests of the process. Results come back grouped by page, with highlighted
title and excerpt fragments ready for display.

Searching is public; dropping a cached index needs an admin token with the
`search_cache` scope.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from typing import Annotated, List, Sequence

from .models import (
    HighlightFragment,
    OperationResult,
    SearchEntry,
    SearchRequest,
    SearchResponse,
    SearchResultView,
)
from .dependencies import get_search_cache
from ..auth.security import require_scopes
from ..config import settings
from ..core.errors import InvalidNamespaceError
from ..namespaces import validate_namespace
from ..search.grouping import build_search_results
from ..search.highlight import highlight
from ..search.index_cache import SearchIndexCache
from ..search.models import PageResult, SearchResult, Section

router = APIRouter(prefix="/search", tags=["search"])


# ---------------------------------------------------------------------
# View helpers
# ---------------------------------------------------------------------

def _fragments(terms: Sequence[str], text: str) -> List[HighlightFragment]:
    return [
        HighlightFragment(text=f.text, match=f.is_match, ellipsis=f.is_ellipsis)
        for f in highlight(
            terms,
            text,
            max_chars=settings.highlight_max_chars,
            window=settings.highlight_window_chars,
        )
    ]


def _entry(section: Section, terms: Sequence[str], with_text: bool = True) -> SearchEntry:
    return SearchEntry(
        slug=section.slug,
        title=section.title,
        type=section.type,
        title_fragments=_fragments(terms, section.title),
        text_fragments=_fragments(terms, section.text) if with_text else [],
    )


def _view(result: SearchResult, terms: Sequence[str]) -> SearchResultView:
    if isinstance(result, PageResult):
        return SearchResultView(
            kind="page",
            entry=_entry(result.page, terms, with_text=False),
            sections=[_entry(s, terms) for s in result.sections],
        )
    return SearchResultView(kind="section", entry=_entry(result.section, terms))


# ---------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------

@router.post(
    "/",
    response_model=SearchResponse,
    summary="Instant full-text search",
    status_code=status.HTTP_200_OK,
)
async def search(
    req: SearchRequest,
    cache: Annotated[SearchIndexCache, Depends(get_search_cache)],
) -> SearchResponse:
    """
    Perform a full-text search over one search data set.

    Parameters
    ----------
    req : SearchRequest
        Contains:
        - query: Search text; blank text yields no results
        - key: Search data key (usually a locale)

    Returns
    -------
    SearchResponse
        Grouped, deduplicated results with highlight fragments.
    """
    # SearchDataNotFoundError propagates to its registered 404 handler.
    if not req.query.strip():
        return SearchResponse(query=req.query)

    index = await cache.get(req.key)
    hits = index.search(req.query)
    terms = req.query.split()

    return SearchResponse(
        query=req.query,
        results=[_view(r, terms) for r in build_search_results(hits, index)],
    )


@router.delete(
    "/cache/{key}",
    response_model=OperationResult,
    summary="Drop the cached index for a search data key",
    dependencies=[Depends(require_scopes("search_cache"))],
)
async def invalidate_cache(
    key: str,
    cache: Annotated[SearchIndexCache, Depends(get_search_cache)],
) -> OperationResult:
    try:
        key = validate_namespace(key)
    except InvalidNamespaceError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc

    cache.invalidate(key)
    return OperationResult(status="deleted")
