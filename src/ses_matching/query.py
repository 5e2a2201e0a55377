"""Request building and result shaping for the matching form.

These pure functions turn form input into vector store payloads and turn the
store's raw matches into display-ready results. They perform no I/O, so the
upsert/query flow can be tested without network access.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Iterable, Mapping
from typing import Any

from ses_matching.models import (
    TOP_K,
    Category,
    Entry,
    EqualsClause,
    QueryFilter,
    QueryRequest,
    RecordMetadata,
    UpsertRecord,
    complement,
)

VALUES_FIELD = "values"


def new_record_id(scheme: str = "timestamp") -> str:
    """Generate an identifier for a new vector store record.

    Args:
        scheme: "timestamp" for ``vec-<epoch ms>`` or "uuid" for ``vec-<uuid4 hex>``

    Returns:
        Record identifier

    Raises:
        ValueError: If the scheme is unknown
    """
    if scheme == "timestamp":
        return f"vec-{int(time.time() * 1000)}"
    if scheme == "uuid":
        return f"vec-{uuid.uuid4().hex}"
    raise ValueError(f"Unknown record id scheme {scheme!r}. Expected 'timestamp' or 'uuid'")


def build_upsert_payload(
    entry: Entry,
    vector: list[float],
    record_id: str | None = None,
    *,
    id_scheme: str = "timestamp",
) -> UpsertRecord:
    """Build the record to upsert for a registered entry.

    Args:
        entry: Validated form entry
        vector: Embedding of ``entry.content``
        record_id: Explicit record id; generated with ``id_scheme`` when omitted
        id_scheme: Scheme passed to :func:`new_record_id`

    Returns:
        Record with metadata ``{content, id, category?}``

    Example:
        >>> record = build_upsert_payload(
        ...     Entry(content="Java developer, 5 years", category=Category.ENGINEER),
        ...     [0.1, 0.2],
        ...     record_id="vec-1",
        ... )
        >>> record.metadata.to_pinecone()
        {'content': 'Java developer, 5 years', 'id': '', 'category': 'engineer'}
    """
    return UpsertRecord(
        record_id=record_id or new_record_id(id_scheme),
        values=vector,
        metadata=RecordMetadata(
            content=entry.content,
            id=entry.id or "",
            category=entry.category,
        ),
    )


def build_query_filter(id: str | None = None, category: Category | None = None) -> QueryFilter:
    """Build the metadata filter for a search.

    An identifier restricts matches to records registered with the same id.
    A category restricts matches to the complementary category, so a project
    search only returns engineers and vice versa.

    Args:
        id: Identifier to match exactly; empty or None means no id clause
        category: Category the search is made from; None means no category clause

    Returns:
        Filter whose clauses are AND-ed together
    """
    clauses: list[EqualsClause] = []
    if id:
        clauses.append(EqualsClause(field="id", value=id))
    if category is not None:
        clauses.append(EqualsClause(field="category", value=complement(category).value))
    return QueryFilter(clauses=tuple(clauses))


def build_query_request(vector: list[float], query_filter: QueryFilter) -> QueryRequest:
    """Wrap a query vector and filter with the fixed result policy."""
    return QueryRequest(
        vector=vector,
        top_k=TOP_K,
        include_values=True,
        include_metadata=True,
        filter=query_filter,
    )


def shape_results(raw_matches: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    """Strip vector values from matches, keeping order and all other fields."""
    return [
        {key: value for key, value in match.items() if key != VALUES_FIELD}
        for match in raw_matches
    ]
