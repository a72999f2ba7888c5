"""
Full-Text Ranker

In-memory full-text search over a flat list of documentation sections.

Each searchable field (`text`, `name`) gets its own BM25+ inverted index.
Query terms are expanded against the field vocabulary with prefix and fuzzy
(edit-distance) matching, and every expansion contributes its BM25+ score
scaled by a match-quality weight and a per-field boost:

    exact   1.0
    prefix  prefix_weight * len(term) / (len(term) + 0.3 * extra_chars)
    fuzzy   fuzzy_weight  * len(term) / (len(term) + distance)

Results are sorted by descending score and truncated to `max_results`.
"""

from __future__ import annotations

import logging
import re
from bisect import bisect_left
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
from rank_bm25 import BM25Plus

from .models import ParentKey, ScoredHit, Section

logger = logging.getLogger("docs.search")


SEARCH_FIELDS = ("text", "name")

_WORD_RE = re.compile(r"\w+", re.UNICODE)


def tokenize(text: Optional[str]) -> List[str]:
    """Split text into lower-cased word tokens."""
    if not text:
        return []
    return [token.lower() for token in _WORD_RE.findall(text)]


def bounded_edit_distance(a: str, b: str, max_distance: int) -> Optional[int]:
    """
    Levenshtein distance between `a` and `b`, or None if it exceeds
    `max_distance`.
    """
    if abs(len(a) - len(b)) > max_distance:
        return None

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        row_min = current[0]
        for j, cb in enumerate(b, start=1):
            current[j] = min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            )
            row_min = min(row_min, current[j])
        if row_min > max_distance:
            return None
        previous = current

    distance = previous[-1]
    return distance if distance <= max_distance else None


# ---------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class SearchOptions:
    prefix: bool = True
    fuzzy: float = 0.15
    max_fuzzy_distance: int = 6
    prefix_weight: float = 0.25
    fuzzy_weight: float = 0.5
    field_boosts: Mapping[str, float] = field(
        default_factory=lambda: {"text": 1.0, "name": 3.0}
    )
    max_results: int = 20


# ---------------------------------------------------------------------
# Field Index
# ---------------------------------------------------------------------

class _FieldIndex:
    """BM25+ index plus sorted vocabulary for a single field."""

    def __init__(self, corpus: List[List[str]]) -> None:
        self.bm25 = BM25Plus(corpus)
        self.vocabulary: List[str] = sorted(self.bm25.idf)

    def expand(self, term: str, options: SearchOptions) -> Dict[str, float]:
        """
        Map vocabulary terms matching `term` to their match-quality weight.
        """
        matches: Dict[str, float] = {}
        vocab = self.vocabulary

        if term in self.bm25.idf:
            matches[term] = 1.0

        if options.prefix:
            start = bisect_left(vocab, term)
            for candidate in vocab[start:]:
                if not candidate.startswith(term):
                    break
                if candidate == term:
                    continue
                extra = len(candidate) - len(term)
                weight = options.prefix_weight * len(term) / (len(term) + 0.3 * extra)
                matches[candidate] = max(matches.get(candidate, 0.0), weight)

        max_distance = min(round(len(term) * options.fuzzy), options.max_fuzzy_distance)
        if max_distance > 0:
            for candidate in vocab:
                distance = bounded_edit_distance(term, candidate, max_distance)
                if not distance:
                    continue
                weight = options.fuzzy_weight * len(term) / (len(term) + distance)
                matches[candidate] = max(matches.get(candidate, 0.0), weight)

        return matches

    def score(self, candidate: str) -> tuple[np.ndarray, np.ndarray]:
        """
        Return (scores, mask) for a single vocabulary term.

        BM25+ assigns a floor score to every document, so the mask marks the
        documents that actually contain the term.
        """
        mask = np.array(
            [candidate in freqs for freqs in self.bm25.doc_freqs],
            dtype=bool,
        )
        scores = np.asarray(self.bm25.get_scores([candidate]), dtype=float)
        return np.where(mask, scores, 0.0), mask


# ---------------------------------------------------------------------
# Full-Text Index
# ---------------------------------------------------------------------

class FullTextIndex:
    """
    Read-only full-text index over a flat list of sections.

    Sections are re-numbered so that `section.index` equals their position,
    which is what integer `parent` keys refer to.
    """

    def __init__(
        self,
        sections: Sequence[Section],
        options: Optional[SearchOptions] = None,
    ) -> None:
        self.options = options or SearchOptions()
        self.sections: List[Section] = [
            section.model_copy(update={"index": i})
            for i, section in enumerate(sections)
        ]
        self._by_slug: Dict[str, Section] = {}
        for section in self.sections:
            self._by_slug.setdefault(section.slug, section)

        self._fields: Dict[str, _FieldIndex] = {}
        for name in SEARCH_FIELDS:
            corpus = [tokenize(getattr(section, name)) for section in self.sections]
            # BM25 needs at least one non-empty document to compute lengths
            if any(corpus):
                self._fields[name] = _FieldIndex(corpus)

        logger.debug(
            "Built full-text index: %d sections, fields=%s",
            len(self.sections),
            sorted(self._fields),
        )

    def __len__(self) -> int:
        return len(self.sections)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def search(self, query: str, max_results: Optional[int] = None) -> List[ScoredHit]:
        """
        Rank sections against a free-text query.

        Returns at most `max_results` hits sorted by descending score. An
        empty query returns an empty list.
        """
        terms = tokenize(query)
        if not terms or not self.sections:
            return []

        limit = self.options.max_results if max_results is None else max_results
        total = np.zeros(len(self.sections), dtype=float)
        matched: Dict[int, set] = {}

        for term in dict.fromkeys(terms):
            for name, field_index in self._fields.items():
                boost = self.options.field_boosts.get(name, 1.0)
                for candidate, weight in field_index.expand(term, self.options).items():
                    scores, mask = field_index.score(candidate)
                    total += boost * weight * scores
                    for position in np.flatnonzero(mask):
                        matched.setdefault(int(position), set()).add(term)

        ranked = sorted(matched, key=lambda position: (-total[position], position))
        return [
            ScoredHit(
                section=self.sections[position],
                score=float(max(total[position], 0.0)),
                terms=tuple(sorted(matched[position])),
            )
            for position in ranked[:limit]
        ]

    def resolve_parent(self, key: ParentKey) -> Optional[Section]:
        """
        Resolve a parent key to its page section.

        Integer keys address the dense index; string keys address slugs.
        Negative integers never resolve, and neither does a key that lands on
        a heading.
        """
        if isinstance(key, int):
            section = self.sections[key] if 0 <= key < len(self.sections) else None
        else:
            section = self._by_slug.get(key)
        if section is None or not section.is_page:
            return None
        return section
