"""Pytest configuration for test discovery, env, and fixtures.

This file ensures that:
- `src/` is importable
- Integration tests can read credentials from `conf/secrets.yml`
- Unit tests get an in-memory index and a deterministic embedder
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure src directory is in path for imports
repo_root = Path(__file__).parent.parent
src_path = repo_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from ses_matching.config import FormConfig, load_secrets_into_env  # noqa: E402
from ses_matching.controller import MatchingController  # noqa: E402
from ses_matching.index import InMemoryIndex  # noqa: E402


class KeywordEmbedding:
    """Deterministic embedder: one dimension per keyword, counting occurrences.

    Texts sharing keywords get high cosine similarity, which makes ranking in
    the in-memory index predictable.
    """

    KEYWORDS = ("java", "python", "react", "aws", "developer", "project", "years", "backend")

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        lowered = text.lower()
        vector = [float(lowered.count(word)) for word in self.KEYWORDS]
        # Constant component keeps every vector non-zero
        return [*vector, 0.1]


class FailingEmbedding:
    """Embedder that always raises, standing in for an unreachable API."""

    async def embed_single(self, text: str) -> list[float]:
        raise RuntimeError("embedding service unavailable")


@pytest.fixture
def embedder() -> KeywordEmbedding:
    return KeywordEmbedding()


@pytest.fixture
def failing_embedder() -> FailingEmbedding:
    return FailingEmbedding()


@pytest.fixture
def memory_index() -> InMemoryIndex:
    return InMemoryIndex(namespace="ns1")


@pytest.fixture
def controller(embedder: KeywordEmbedding, memory_index: InMemoryIndex) -> MatchingController:
    return MatchingController(
        embedder=embedder,
        index=memory_index,
        form_config=FormConfig(record_id_scheme="uuid"),
    )


@pytest.fixture
def id_only_controller(
    embedder: KeywordEmbedding, memory_index: InMemoryIndex
) -> MatchingController:
    """Controller for the form variant without a category selector."""
    return MatchingController(
        embedder=embedder,
        index=memory_index,
        form_config=FormConfig(categories_enabled=False, record_id_scheme="uuid"),
    )


def pytest_sessionstart(session: object) -> None:
    load_secrets_into_env(repo_root / "conf" / "secrets.yml")
