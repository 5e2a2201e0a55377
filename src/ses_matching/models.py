"""Pydantic models for the matching form and the vector store payloads.

All data flowing between the form, the embedding service and the vector store
is validated against these schemas.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

TOP_K = 2


class Category(str, Enum):
    """Kind of entry being registered or searched from."""

    PROJECT = "project"
    ENGINEER = "engineer"


def complement(category: Category) -> Category:
    """Return the category a search from ``category`` looks in.

    Projects are matched against engineers and engineers against projects.
    Plain strings naming a category are accepted.
    """
    try:
        category = Category(category)
    except ValueError:
        raise ValueError(f"Unknown category: {category!r}") from None
    return Category.ENGINEER if category is Category.PROJECT else Category.PROJECT


class Action(str, Enum):
    """User actions offered by the form."""

    REGISTER = "register"
    SEARCH = "search"


class Entry(BaseModel):
    """A single form submission.

    Attributes:
        content: Free text to embed (engineer profile or project description)
        id: Optional engineer or project identifier, empty when not given
        category: Selected category, None when categories are disabled
    """

    content: str = Field(min_length=1)
    id: str = ""
    category: Category | None = None


class RecordMetadata(BaseModel):
    """Metadata stored next to each vector."""

    content: str
    id: str = ""
    category: Category | None = None

    def to_pinecone(self) -> dict[str, str]:
        metadata = {"content": self.content, "id": self.id}
        if self.category is not None:
            metadata["category"] = self.category.value
        return metadata


class UpsertRecord(BaseModel):
    """A record ready for insertion into the vector store.

    Attributes:
        record_id: Store-level identifier (``vec-...``)
        values: Embedding vector
        metadata: Content, identifier and optional category
    """

    record_id: str = Field(min_length=1)
    values: list[float] = Field(min_length=1)
    metadata: RecordMetadata

    def to_pinecone(self) -> dict[str, Any]:
        return {
            "id": self.record_id,
            "values": self.values,
            "metadata": self.metadata.to_pinecone(),
        }


class EqualsClause(BaseModel):
    """Equality predicate on a single metadata field."""

    model_config = ConfigDict(frozen=True)

    field: str
    value: str

    def to_pinecone(self) -> dict[str, dict[str, str]]:
        return {self.field: {"$eq": self.value}}


class QueryFilter(BaseModel):
    """Conjunction of equality clauses; no clauses means match anything."""

    model_config = ConfigDict(frozen=True)

    clauses: tuple[EqualsClause, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.clauses

    def to_pinecone(self) -> dict[str, Any] | None:
        """Render the filter in Pinecone's metadata filter language."""
        if not self.clauses:
            return None
        if len(self.clauses) == 1:
            return self.clauses[0].to_pinecone()
        return {"$and": [clause.to_pinecone() for clause in self.clauses]}


class QueryRequest(BaseModel):
    """A similarity query against the vector store.

    Attributes:
        vector: Query embedding
        top_k: Maximum number of matches (fixed at 2)
        include_values: Ask the store to return vectors
        include_metadata: Ask the store to return metadata
        filter: Metadata filter
    """

    vector: list[float] = Field(min_length=1)
    top_k: int = Field(default=TOP_K, ge=1, le=TOP_K)
    include_values: bool = True
    include_metadata: bool = True
    filter: QueryFilter = Field(default_factory=QueryFilter)


class MatchResult(BaseModel):
    """A returned match with the raw vector removed, used for display."""

    model_config = ConfigDict(extra="allow")

    id: str
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ApiResponse(BaseModel):
    """Structured result shown verbatim under the form.

    Attributes:
        message: Outcome message ("Success")
        timestamp: ISO 8601 time the response was produced
        content: Human readable summary of what was done
        action: Action that produced the response
        matches: Cleaned matches for searches, empty for registrations
    """

    message: str = "Success"
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    content: str
    action: Action
    matches: list[MatchResult] = Field(default_factory=list)


class IndexStats(BaseModel):
    """Statistics about the vector index.

    Attributes:
        total_records: Total number of vectors in the index
        namespace_records: Number of vectors in the configured namespace
        dimension: Index dimensionality, if reported
    """

    total_records: int = Field(ge=0)
    namespace_records: int = Field(ge=0)
    dimension: int | None = None
