"""
API Models for the Docs Assistant Server

This module defines all Pydantic models used for request/response validation
across chat, semantic search, instant search and embedding endpoints.

Design Goals
------------
- Strong typing
- Safe defaults (no shared mutable state)
- Clear schema documentation
- Wire compatibility with the JavaScript widget (camelCase aliases)
"""

from __future__ import annotations

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..namespaces import validate_namespace
from ..search.models import Section


# ---------------------------------------------------------------------
# Shared Validators
# ---------------------------------------------------------------------

class NamespacedModel(BaseModel):
    """Base for request bodies scoped to a namespace."""

    namespace: str = Field(..., min_length=1, max_length=128)

    @field_validator("namespace")
    @classmethod
    def _check_namespace(cls, value: str) -> str:
        return validate_namespace(value)


# ---------------------------------------------------------------------
# Chat Models
# ---------------------------------------------------------------------

class ChatMessage(BaseModel):
    """
    Single message in a chat conversation.
    """
    role: Literal["system", "user", "assistant"]
    content: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="ignore")


class ChatRequest(NamespacedModel):
    """
    Chat request payload.

    `additional_messages` carries caller-curated context (such as the
    markdown of the current page). When present, retrieval is skipped.
    """
    type: Literal["chat"] = "chat"
    messages: List[ChatMessage] = Field(..., min_length=1)
    additional_messages: List[ChatMessage] = Field(
        default_factory=list,
        alias="additionalMessages",
    )

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class SemanticSearchRequest(NamespacedModel):
    """
    Semantic search request: retrieval only, no model call.
    """
    type: Literal["semantic-search"]
    query: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="ignore")


DocsChatRequest = Annotated[
    Union[ChatRequest, SemanticSearchRequest],
    Field(discriminator="type"),
]


# ---------------------------------------------------------------------
# Instant Search Models
# ---------------------------------------------------------------------

class SearchRequest(BaseModel):
    """
    Full-text search request against one search data key.
    """
    query: str = Field(default="", max_length=1000)
    key: str = Field(..., min_length=1, max_length=128)

    model_config = ConfigDict(extra="forbid")

    @field_validator("key")
    @classmethod
    def _check_key(cls, value: str) -> str:
        return validate_namespace(value)


class HighlightFragment(BaseModel):
    text: str
    match: bool = False
    ellipsis: bool = False


class SearchEntry(BaseModel):
    """
    One displayable search entry (a page or a heading).
    """
    slug: str
    title: str
    type: str
    title_fragments: List[HighlightFragment] = Field(default_factory=list)
    text_fragments: List[HighlightFragment] = Field(default_factory=list)


class SearchResultView(BaseModel):
    """
    A page entry with its matched headings, or a standalone entry.
    """
    kind: Literal["page", "section"]
    entry: SearchEntry
    sections: List[SearchEntry] = Field(default_factory=list)


class SearchResponse(BaseModel):
    query: str
    results: List[SearchResultView] = Field(default_factory=list)


# ---------------------------------------------------------------------
# Embedding Models
# ---------------------------------------------------------------------

class OperationResult(BaseModel):
    """
    Standardized mutation operation result.
    Used for create/update/delete-style endpoints.
    """
    status: Literal["updated", "deleted", "created", "ok"]
    count: Optional[int] = Field(default=None, ge=0)

    model_config = ConfigDict(extra="forbid")


class EmbeddingUpsertRequest(NamespacedModel):
    """
    Request to (re)embed documentation sections into a namespace.
    """
    sections: List[Section] = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")


class EmbeddingStatsResponse(BaseModel):
    """
    Statistics for one namespace of the vector store.
    """
    namespace: str
    total_vectors: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)

    model_config = ConfigDict(extra="forbid")
