"""
Search Data Models

This module defines the canonical record shapes shared by the instant-search
path and the chat retrieval path.

- `Section` is one indexed, addressable unit of documentation (a whole page or
  a heading inside one).
- `ScoredHit` and `ResultGroup` are ephemeral ranking artifacts, recomputed on
  every query.
- `PageResult` / `StandaloneResult` form the tagged result variant returned to
  callers.
- `RetrievedPassage` is the minimal projection used as LLM context.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from statistics import fmean
from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


SectionType = Literal["page", "h1", "h2", "h3"]

ParentKey = Union[int, str]


def basename(path: str) -> str:
    """Return the last `/` or `\\` separated segment of a path."""
    return re.split(r"[\\/]", path)[-1]


# ---------------------------------------------------------------------
# Indexed Records
# ---------------------------------------------------------------------

class Section(BaseModel):
    """
    A single indexed documentation section.

    `parent` refers to the page a heading belongs to, either by the page's
    dense `index` in the flat search data or by its `slug`. Pages have no
    parent.
    """

    slug: str = Field(..., min_length=1)
    name: Optional[str] = None
    text: str = ""
    type: SectionType = "page"
    parent: Optional[ParentKey] = None
    index: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
    )

    @property
    def title(self) -> str:
        """Display title, falling back to the slug basename."""
        return self.name or basename(self.slug)

    @property
    def is_page(self) -> bool:
        return self.type == "page"

    @property
    def parent_key(self) -> Optional[ParentKey]:
        """The grouping key of this section, or None for pages and orphans."""
        if self.is_page or self.parent is None or self.parent == "":
            return None
        return self.parent


class RetrievedPassage(BaseModel):
    """
    Section-like record returned by the semantic retriever.

    Only the metadata needed for citation and context packing is carried.
    """

    slug: Optional[str] = None
    name: Optional[str] = None
    text: Optional[str] = None
    type: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------
# Ranking Artifacts
# ---------------------------------------------------------------------

@dataclass(frozen=True)
class ScoredHit:
    """A section plus its relevance score and the query terms it matched."""
    section: Section
    score: float
    terms: Tuple[str, ...] = ()


@dataclass
class ResultGroup:
    """Hits sharing a parent page, or a synthetic singleton."""
    key: ParentKey
    hits: List[ScoredHit] = field(default_factory=list)
    synthetic: bool = False

    @property
    def mean_score(self) -> float:
        return fmean(hit.score for hit in self.hits) if self.hits else 0.0


# ---------------------------------------------------------------------
# Search Results (tagged variant)
# ---------------------------------------------------------------------

class PageResult(BaseModel):
    """A page together with the matched headings that belong to it."""
    kind: Literal["page"] = "page"
    page: Section
    sections: List[Section] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def slug(self) -> str:
        return self.page.slug


class StandaloneResult(BaseModel):
    """A single section shown on its own, without a resolved parent page."""
    kind: Literal["section"] = "section"
    section: Section

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def slug(self) -> str:
        return self.section.slug


SearchResult = Union[PageResult, StandaloneResult]
