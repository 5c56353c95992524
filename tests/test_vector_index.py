from unittest.mock import MagicMock

import pytest

from conftest import FailingIndex
from talent_match.services.vector_index import InMemoryVectorIndex, MongoVectorIndex, VectorRetriever
from talent_match.utils.exceptions import RetrievalError


class AsyncCursor:
    def __init__(self, docs):
        self.docs = docs

    def __aiter__(self):
        self._it = iter(self.docs)
        return self

    async def __anext__(self):
        try:
            return next(self._it)
        except StopIteration:
            raise StopAsyncIteration


class StaticIndex:
    """Returns canned hits regardless of the query"""

    name = "static"

    def __init__(self, hits):
        self.hits = hits
        self.requested = []

    async def search(self, query_embedding, top_k):
        self.requested.append(top_k)
        return self.hits[:top_k]


@pytest.fixture
def index():
    idx = InMemoryVectorIndex()
    idx.add("a", [1.0, 0.0, 0.0])
    idx.add("b", [0.7, 0.7, 0.0])
    idx.add("c", [0.0, 0.0, 1.0])
    return idx


class TestInMemoryVectorIndex:
    """Test cases for the brute-force index"""

    @pytest.mark.asyncio
    async def test_nearest_first(self, index):
        hits = await index.search([1.0, 0.1, 0.0], 3)
        assert [h[0] for h in hits] == ["a", "b", "c"]
        assert hits[0][1] < hits[1][1] < hits[2][1]

    @pytest.mark.asyncio
    async def test_identical_vector_has_zero_distance(self, index):
        hits = await index.search([0.0, 0.0, 2.0], 1)
        assert hits == [("c", pytest.approx(0.0))]

    @pytest.mark.asyncio
    async def test_remove_and_replace(self, index):
        index.remove("a")
        index.add("b", [0.0, 0.0, 1.0])
        hits = await index.search([0.0, 0.0, 1.0], 5)
        assert len(index) == 2
        assert {h[0] for h in hits} == {"b", "c"}

    def test_dimension_checked_on_add(self, index):
        with pytest.raises(ValueError):
            index.add("d", [1.0, 2.0])


class TestVectorRetriever:
    """Test cases for VectorRetriever"""

    @pytest.mark.asyncio
    async def test_never_more_than_requested(self, index):
        retriever = VectorRetriever(index)
        assert len(await retriever.search([1.0, 0.0, 0.0], 2)) == 2

    @pytest.mark.asyncio
    async def test_fewer_results_is_not_an_error(self, index):
        retriever = VectorRetriever(index)
        assert len(await retriever.search([1.0, 0.0, 0.0], 10)) == 3

    @pytest.mark.asyncio
    async def test_top_k_bounded(self):
        static = StaticIndex([(str(i), i / 100) for i in range(80)])
        retriever = VectorRetriever(static, max_top_k=50)
        assert len(await retriever.search([0.0], 500)) == 50
        assert len(await retriever.search([0.0], 0)) == 1
        assert static.requested == [50, 1]

    @pytest.mark.asyncio
    async def test_index_order_preserved(self):
        retriever = VectorRetriever(StaticIndex([("x", 0.4), ("y", 0.1), ("z", 0.3)]))
        neighbors = await retriever.search([0.0], 3)
        assert [n.entity_id for n in neighbors] == ["x", "y", "z"]

    @pytest.mark.asyncio
    async def test_index_failure_raises_retrieval_error(self):
        retriever = VectorRetriever(FailingIndex())
        with pytest.raises(RetrievalError) as exc_info:
            await retriever.search([0.0], 5)
        assert exc_info.value.details["index_name"] == "broken_index"
        assert isinstance(exc_info.value.cause, ConnectionError)


class TestMongoVectorIndex:
    """Test cases for the Atlas $vectorSearch backend"""

    @pytest.mark.asyncio
    async def test_pipeline_and_distance_conversion(self):
        collection = MagicMock()
        collection.aggregate.return_value = AsyncCursor([
            {"candidate_id": "c1", "score": 1.0},
            {"candidate_id": "c2", "score": 0.75},
        ])
        index = MongoVectorIndex(collection, "candidate_embedding_index", "candidate_id", "resume_embedding")

        hits = await index.search([0.1, 0.2], 2)

        assert hits == [("c1", pytest.approx(0.0)), ("c2", pytest.approx(0.5))]
        pipeline = collection.aggregate.call_args.args[0]
        stage = pipeline[0]["$vectorSearch"]
        assert stage["index"] == "candidate_embedding_index"
        assert stage["path"] == "resume_embedding"
        assert stage["numCandidates"] == 20
        assert stage["limit"] == 2
