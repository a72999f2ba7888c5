"""
Result Grouper

Turns a ranked list of hits into hierarchically grouped search results:

1. Hits are bucketed by parent page. Pages and parentless headings are
   exploded into singleton groups with synthetic negative keys.
2. Groups keep their first-appearance order, then are stably sorted by
   descending mean member score (ties keep the original rank order).
3. Members of real groups are sorted by descending score.
4. Groups whose parent resolves become a PageResult; everything else becomes
   StandaloneResults.
5. The flat result list is deduplicated by slug, first occurrence wins.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional, Sequence, TypeVar

from .models import (
    PageResult,
    ParentKey,
    ResultGroup,
    ScoredHit,
    SearchResult,
    Section,
    StandaloneResult,
)
from .ranker import FullTextIndex


T = TypeVar("T")

ParentResolver = Callable[[ParentKey], Optional[Section]]


def group_hits(hits: Sequence[ScoredHit]) -> List[ResultGroup]:
    """
    Partition ranked hits into groups and order them by mean score.
    """
    ordered: List[ResultGroup] = []
    by_parent: Dict[ParentKey, ResultGroup] = {}
    synthetic_count = 0

    for hit in hits:
        key = hit.section.parent_key
        if key is None:
            synthetic_count += 1
            ordered.append(ResultGroup(key=-synthetic_count, hits=[hit], synthetic=True))
            continue

        group = by_parent.get(key)
        if group is None:
            group = ResultGroup(key=key)
            by_parent[key] = group
            ordered.append(group)
        group.hits.append(hit)

    for group in ordered:
        if not group.synthetic:
            group.hits.sort(key=lambda hit: hit.score, reverse=True)

    # sorted() is stable, so equal means keep first-appearance order
    return sorted(ordered, key=lambda group: group.mean_score, reverse=True)


def resolve_groups(
    groups: Iterable[ResultGroup],
    resolve: ParentResolver,
) -> List[SearchResult]:
    """
    Map groups to results, attaching headings to their resolved page.
    """
    results: List[SearchResult] = []

    for group in groups:
        parent = None if group.synthetic else resolve(group.key)
        if parent is None:
            results.extend(StandaloneResult(section=hit.section) for hit in group.hits)
            continue

        results.append(
            PageResult(
                page=parent,
                sections=[hit.section for hit in group.hits],
            )
        )

    return results


def deduplicate_by_key(items: Iterable[T], key: Callable[[T], str]) -> List[T]:
    """Keep the first item for each key, preserving order."""
    seen = set()
    unique: List[T] = []
    for item in items:
        k = key(item)
        if k in seen:
            continue
        seen.add(k)
        unique.append(item)
    return unique


def deduplicate_by_slug(results: Iterable[SearchResult]) -> List[SearchResult]:
    return deduplicate_by_key(results, lambda result: result.slug)


def build_search_results(
    hits: Sequence[ScoredHit],
    index: FullTextIndex,
) -> List[SearchResult]:
    """
    Group, resolve and deduplicate hits against the index they came from.
    """
    groups = group_hits(hits)
    return deduplicate_by_slug(resolve_groups(groups, index.resolve_parent))
