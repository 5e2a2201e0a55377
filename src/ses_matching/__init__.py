"""Engineer/project matching over a hosted vector index.

A small form collects free text, an optional identifier and a category,
embeds the text with OpenAI and stores or queries it in Pinecone. Searches
from one category only return entries of the other category.

Architecture:
    - models: Pydantic schemas for entries, records, filters and responses
    - query: Pure request building and result shaping
    - embedding: OpenAI and random-vector embedding clients
    - index: Pinecone and in-memory vector index clients
    - controller: Form state machine and action orchestration
    - config: Hydra/OmegaConf configuration validated with Pydantic

Usage:
    >>> from ses_matching import Category, build_query_filter
    >>> build_query_filter(id="E-42", category=Category.PROJECT).to_pinecone()
    {'$and': [{'id': {'$eq': 'E-42'}}, {'category': {'$eq': 'engineer'}}]}
"""

__version__ = "0.3.0"

from ses_matching.models import (
    Action,
    ApiResponse,
    Category,
    Entry,
    MatchResult,
    QueryFilter,
    UpsertRecord,
    complement,
)
from ses_matching.query import build_query_filter, build_upsert_payload, shape_results

__all__ = [
    "Action",
    "ApiResponse",
    "Category",
    "Entry",
    "MatchResult",
    "QueryFilter",
    "UpsertRecord",
    "build_query_filter",
    "build_upsert_payload",
    "complement",
    "shape_results",
]
