"""
Authentication Models
"""

from typing import List
from pydantic import BaseModel, Field, ConfigDict


class ServiceContext(BaseModel):
    """
    Caller identity taken from a verified admin token.

    Admin callers are build jobs and operators that ingest sections or clear
    search caches; widget traffic never carries one.
    """

    subject: str = Field(
        ...,
        min_length=1,
        description="Who minted the token, e.g. the docs build pipeline.",
    )

    scopes: List[str] = Field(
        default_factory=list,
        description="Granted operations: 'embeddings', 'search_cache'.",
    )

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
    )
