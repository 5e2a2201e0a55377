"""Vector index clients for storing and querying form entries.

Provides a unified interface over:
- Pinecone (hosted index, the production backend)
- An in-memory store with the same filter semantics, for tests and offline demos
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import BaseModel, Field, field_validator

from ses_matching.models import IndexStats, QueryRequest, UpsertRecord

if TYPE_CHECKING:
    from pinecone import Index


class IndexConfig(BaseModel):
    """Vector index configuration.

    Attributes:
        backend: Index backend ("pinecone" or "memory")
        index_name: Name of the Pinecone index
        namespace: Namespace records are written to and queried from
        api_key: Pinecone API key (empty when unset)
        environment: Pinecone region used when creating the index
        dimension: Vector dimensionality used when creating the index
        metric: Similarity metric used when creating the index
    """

    backend: str = Field(default="pinecone", pattern="^(pinecone|memory)$")
    index_name: str = "ses-matching-test"
    namespace: str = "ns1"
    api_key: str = ""
    environment: str = "us-east-1"
    dimension: int = Field(default=1536, ge=1, le=20000)
    metric: str = Field(default="cosine", pattern="^(cosine|euclidean|dotproduct)$")

    @field_validator("api_key", mode="before")
    @classmethod
    def default_empty_key(cls, v: str | None) -> str:
        """Missing credentials become an empty string rather than an error."""
        return "" if v is None else str(v)


class VectorIndex(ABC):
    """Abstract base class for vector index implementations."""

    @abstractmethod
    async def upsert(self, records: list[UpsertRecord]) -> None:
        """Insert or update records in the index.

        Args:
            records: Records to upsert

        Raises:
            ValueError: If records list is empty
        """
        ...

    @abstractmethod
    async def query(self, request: QueryRequest) -> list[dict[str, Any]]:
        """Return raw matches as dicts, best match first.

        Each match has ``id``, ``score``, ``metadata`` and, when requested,
        ``values``.
        """
        ...

    @abstractmethod
    async def delete(self, record_ids: list[str]) -> None:
        """Delete records from the index by ID."""
        ...

    @abstractmethod
    async def stats(self) -> IndexStats:
        """Get index statistics."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if index is accessible and healthy.

        Returns:
            True if healthy, False otherwise
        """
        ...


class PineconeIndex(VectorIndex):
    """Pinecone vector index implementation."""

    def __init__(self, index_name: str, api_key: str, namespace: str):
        """Remember connection settings.

        The Pinecone client is created on first use, so a missing API key
        surfaces when an action runs rather than when the form starts.

        Args:
            index_name: Name of Pinecone index
            api_key: Pinecone API key
            namespace: Namespace for all reads and writes
        """
        self.index_name = index_name
        self.api_key = api_key
        self.namespace = namespace
        self._index: Index | None = None

    @property
    def index(self) -> Index:
        if self._index is None:
            from pinecone import Pinecone

            pc = Pinecone(api_key=self.api_key)
            self._index = pc.Index(self.index_name)
        return self._index

    async def upsert(self, records: list[UpsertRecord]) -> None:
        if not records:
            raise ValueError("Cannot upsert empty record list")

        vectors = [record.to_pinecone() for record in records]
        self.index.upsert(vectors=vectors, namespace=self.namespace)
        logger.debug(f"Upserted {len(vectors)} records into {self.index_name}/{self.namespace}")

    async def query(self, request: QueryRequest) -> list[dict[str, Any]]:
        results = self.index.query(
            vector=request.vector,
            top_k=request.top_k,
            namespace=self.namespace,
            include_values=request.include_values,
            include_metadata=request.include_metadata,
            filter=request.filter.to_pinecone(),
        )

        matches = []
        for match in results.matches:
            item: dict[str, Any] = {
                "id": match.id,
                "score": match.score,
                "metadata": dict(match.metadata or {}),
            }
            if request.include_values:
                item["values"] = list(match.values or [])
            matches.append(item)

        logger.debug(
            f"Query on {self.index_name}/{self.namespace} returned {len(matches)} matches"
        )
        return matches

    async def delete(self, record_ids: list[str]) -> None:
        if not record_ids:
            return

        self.index.delete(ids=record_ids, namespace=self.namespace)

    async def stats(self) -> IndexStats:
        stats = self.index.describe_index_stats()

        total = getattr(stats, "total_vector_count", 0) or 0
        namespaces = getattr(stats, "namespaces", None) or {}
        summary = namespaces.get(self.namespace)
        in_namespace = getattr(summary, "vector_count", 0) if summary is not None else 0

        return IndexStats(
            total_records=total,
            namespace_records=in_namespace or 0,
            dimension=getattr(stats, "dimension", None),
        )

    async def health_check(self) -> bool:
        try:
            self.index.describe_index_stats()
            return True
        except Exception as e:
            logger.warning(f"Pinecone health check failed: {e}")
            return False


class InMemoryIndex(VectorIndex):
    """Process-local index with cosine scoring and Pinecone-style filters.

    Supports ``{"field": {"$eq": value}}`` clauses and ``{"$and": [...]}``
    conjunctions, which is everything the form ever sends.
    """

    def __init__(self, namespace: str = "ns1"):
        self.namespace = namespace
        self.records: dict[str, UpsertRecord] = {}

    async def upsert(self, records: list[UpsertRecord]) -> None:
        if not records:
            raise ValueError("Cannot upsert empty record list")

        for record in records:
            self.records[record.record_id] = record

    async def query(self, request: QueryRequest) -> list[dict[str, Any]]:
        condition = request.filter.to_pinecone()
        scored = []
        for record in self.records.values():
            metadata = record.metadata.to_pinecone()
            if not _matches_filter(metadata, condition):
                continue
            scored.append((_cosine(request.vector, record.values), record, metadata))

        scored.sort(key=lambda item: item[0], reverse=True)

        matches = []
        for score, record, metadata in scored[: request.top_k]:
            item: dict[str, Any] = {"id": record.record_id, "score": score}
            if request.include_values:
                item["values"] = list(record.values)
            if request.include_metadata:
                item["metadata"] = metadata
            matches.append(item)
        return matches

    async def delete(self, record_ids: list[str]) -> None:
        for record_id in record_ids:
            self.records.pop(record_id, None)

    async def stats(self) -> IndexStats:
        dimension = None
        if self.records:
            dimension = len(next(iter(self.records.values())).values)
        return IndexStats(
            total_records=len(self.records),
            namespace_records=len(self.records),
            dimension=dimension,
        )

    async def health_check(self) -> bool:
        return True


def _matches_filter(metadata: dict[str, Any], condition: dict[str, Any] | None) -> bool:
    if not condition:
        return True
    if "$and" in condition:
        return all(_matches_filter(metadata, clause) for clause in condition["$and"])
    for field, predicate in condition.items():
        if metadata.get(field) != predicate["$eq"]:
            return False
    return True


def _cosine(a: list[float], b: list[float]) -> float:
    if len(a) != len(b):
        raise ValueError(f"Vector dimension mismatch: {len(a)} != {len(b)}")
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b, strict=True)) / norm


def create_index(config: IndexConfig) -> VectorIndex:
    """Factory function to create a vector index from config.

    Args:
        config: Index configuration

    Returns:
        Vector index implementation
    """
    if config.backend == "pinecone":
        return PineconeIndex(
            index_name=config.index_name,
            api_key=config.api_key,
            namespace=config.namespace,
        )
    elif config.backend == "memory":
        return InMemoryIndex(namespace=config.namespace)
    else:
        raise ValueError(f"Unknown index backend {config.backend!r}")
