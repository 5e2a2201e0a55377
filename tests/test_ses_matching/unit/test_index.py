"""Unit tests for vector index clients.

Pinecone is replaced with a stub object; the in-memory index is exercised
directly since it is the faked backing store for controller tests.
"""

from types import SimpleNamespace

import pytest

from ses_matching.index import (
    IndexConfig,
    InMemoryIndex,
    PineconeIndex,
    create_index,
)
from ses_matching.models import Category, Entry
from ses_matching.query import build_query_filter, build_query_request, build_upsert_payload


def _record(record_id: str, vector: list[float], content: str, id: str = "", category=None):
    entry = Entry(content=content, id=id, category=category)
    return build_upsert_payload(entry, vector, record_id=record_id)


class StubPineconeIndex:
    """Records calls made through the Pinecone data-plane API."""

    def __init__(self, matches=None, stats=None):
        self.calls: list[tuple[str, dict]] = []
        self.matches = matches or []
        self._stats = stats

    def upsert(self, **kwargs):
        self.calls.append(("upsert", kwargs))

    def query(self, **kwargs):
        self.calls.append(("query", kwargs))
        return SimpleNamespace(matches=self.matches)

    def delete(self, **kwargs):
        self.calls.append(("delete", kwargs))

    def describe_index_stats(self):
        if self._stats is None:
            raise ConnectionError("unreachable")
        return self._stats


@pytest.fixture
def pinecone_index():
    index = PineconeIndex(index_name="ses-matching-test", api_key="", namespace="ns1")
    index._index = StubPineconeIndex()
    return index


class TestIndexConfig:
    def test_defaults(self):
        config = IndexConfig()
        assert config.backend == "pinecone"
        assert config.index_name == "ses-matching-test"
        assert config.namespace == "ns1"
        assert config.api_key == ""

    def test_invalid_backend(self):
        with pytest.raises(ValueError):
            IndexConfig(backend="qdrant")

    def test_none_api_key(self):
        assert IndexConfig(api_key=None).api_key == ""


class TestPineconeIndex:
    """Tests for the Pinecone adapter against a stubbed client."""

    def test_client_is_created_lazily(self):
        index = PineconeIndex(index_name="ses-matching-test", api_key="", namespace="ns1")
        assert index._index is None

    async def test_upsert_sends_pinecone_shape(self, pinecone_index):
        record = _record("vec-1", [0.1, 0.2], "Java", category=Category.ENGINEER)
        await pinecone_index.upsert([record])

        name, kwargs = pinecone_index._index.calls[0]
        assert name == "upsert"
        assert kwargs["namespace"] == "ns1"
        assert kwargs["vectors"] == [
            {
                "id": "vec-1",
                "values": [0.1, 0.2],
                "metadata": {"content": "Java", "id": "", "category": "engineer"},
            }
        ]

    async def test_upsert_empty_raises(self, pinecone_index):
        with pytest.raises(ValueError):
            await pinecone_index.upsert([])

    async def test_query_passes_filter_and_policy(self, pinecone_index):
        pinecone_index._index.matches = [
            SimpleNamespace(id="vec-9", score=0.8, values=[0.1], metadata={"content": "P"}),
        ]
        request = build_query_request([0.1], build_query_filter(category=Category.PROJECT))

        matches = await pinecone_index.query(request)

        name, kwargs = pinecone_index._index.calls[0]
        assert name == "query"
        assert kwargs == {
            "vector": [0.1],
            "top_k": 2,
            "namespace": "ns1",
            "include_values": True,
            "include_metadata": True,
            "filter": {"category": {"$eq": "engineer"}},
        }
        assert matches == [
            {"id": "vec-9", "score": 0.8, "metadata": {"content": "P"}, "values": [0.1]}
        ]

    async def test_query_without_filter_sends_none(self, pinecone_index):
        await pinecone_index.query(build_query_request([0.1], build_query_filter()))
        assert pinecone_index._index.calls[0][1]["filter"] is None

    async def test_delete_skips_empty(self, pinecone_index):
        await pinecone_index.delete([])
        assert pinecone_index._index.calls == []

    async def test_delete(self, pinecone_index):
        await pinecone_index.delete(["vec-1"])
        assert pinecone_index._index.calls == [("delete", {"ids": ["vec-1"], "namespace": "ns1"})]

    async def test_stats(self, pinecone_index):
        pinecone_index._index._stats = SimpleNamespace(
            total_vector_count=5,
            dimension=1536,
            namespaces={"ns1": SimpleNamespace(vector_count=3)},
        )
        stats = await pinecone_index.stats()
        assert stats.total_records == 5
        assert stats.namespace_records == 3
        assert stats.dimension == 1536

    async def test_health_check_false_on_error(self, pinecone_index):
        assert await pinecone_index.health_check() is False


class TestInMemoryIndex:
    """Tests for the in-memory backing store."""

    async def test_ranks_by_cosine_and_caps_results(self, memory_index):
        await memory_index.upsert(
            [
                _record("a", [1.0, 0.0], "a"),
                _record("b", [0.7, 0.7], "b"),
                _record("c", [0.0, 1.0], "c"),
            ]
        )
        matches = await memory_index.query(build_query_request([1.0, 0.1], build_query_filter()))

        assert [m["id"] for m in matches] == ["a", "b"]
        assert matches[0]["score"] >= matches[1]["score"]
        assert "values" in matches[0]
        assert matches[0]["metadata"] == {"content": "a", "id": ""}

    async def test_filters_on_complement_category(self, memory_index):
        await memory_index.upsert(
            [
                _record("eng", [1.0, 0.0], "Java dev", category=Category.ENGINEER),
                _record("prj", [1.0, 0.0], "Java project", category=Category.PROJECT),
            ]
        )
        from_project = await memory_index.query(
            build_query_request([1.0, 0.0], build_query_filter(category=Category.PROJECT))
        )
        from_engineer = await memory_index.query(
            build_query_request([1.0, 0.0], build_query_filter(category=Category.ENGINEER))
        )

        assert [m["id"] for m in from_project] == ["eng"]
        assert [m["id"] for m in from_engineer] == ["prj"]

    async def test_filters_on_id_and_category(self, memory_index):
        await memory_index.upsert(
            [
                _record("e1", [1.0], "x", id="E-1", category=Category.ENGINEER),
                _record("e2", [1.0], "x", id="E-2", category=Category.ENGINEER),
            ]
        )
        matches = await memory_index.query(
            build_query_request([1.0], build_query_filter(id="E-2", category=Category.PROJECT))
        )
        assert [m["id"] for m in matches] == ["e2"]

    async def test_upsert_overwrites_same_id(self, memory_index):
        await memory_index.upsert([_record("a", [1.0], "old")])
        await memory_index.upsert([_record("a", [1.0], "new")])
        stats = await memory_index.stats()
        assert stats.total_records == 1
        assert memory_index.records["a"].metadata.content == "new"

    async def test_dimension_mismatch_raises(self, memory_index):
        await memory_index.upsert([_record("a", [1.0, 0.0], "a")])
        with pytest.raises(ValueError, match="dimension mismatch"):
            await memory_index.query(build_query_request([1.0], build_query_filter()))

    async def test_delete_and_stats(self, memory_index):
        await memory_index.upsert([_record("a", [1.0, 2.0], "a"), _record("b", [1.0, 2.0], "b")])
        await memory_index.delete(["a", "missing"])
        stats = await memory_index.stats()
        assert stats.total_records == 1
        assert stats.dimension == 2
        assert await memory_index.health_check() is True


class TestCreateIndex:
    def test_pinecone_backend(self):
        assert isinstance(create_index(IndexConfig(backend="pinecone")), PineconeIndex)

    def test_memory_backend(self):
        index = create_index(IndexConfig(backend="memory", namespace="other"))
        assert isinstance(index, InMemoryIndex)
        assert index.namespace == "other"
