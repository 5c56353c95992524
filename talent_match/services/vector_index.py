"""
Nearest-neighbour retrieval over candidate and job embeddings.
"""
from typing import Dict, List, Protocol, Sequence, Tuple

import numpy as np

from talent_match.models.models import Neighbor
from talent_match.utils.exceptions import RetrievalError
from talent_match.utils.logging_config import get_logger

logger = get_logger(__name__)


class VectorIndex(Protocol):
    name: str

    async def search(self, query_embedding: Sequence[float], top_k: int) -> List[Tuple[str, float]]:
        """Return up to top_k (entity_id, distance) pairs, nearest first"""
        ...


class MongoVectorIndex:
    """Atlas Vector Search over one collection's embedding field"""

    def __init__(self, collection, index_name: str, id_field: str, embedding_field: str,
                 num_candidates_multiplier: int = 10, prefilter: Dict = None):
        self.collection = collection
        self.name = index_name
        self.id_field = id_field
        self.embedding_field = embedding_field
        self.num_candidates_multiplier = num_candidates_multiplier
        self.prefilter = prefilter

    def _pipeline(self, query_embedding: Sequence[float], top_k: int) -> List[Dict]:
        stage = {
            "index": self.name,
            "path": self.embedding_field,
            "queryVector": [float(x) for x in query_embedding],
            "numCandidates": top_k * self.num_candidates_multiplier,
            "limit": top_k,
        }
        if self.prefilter:
            stage["filter"] = self.prefilter
        return [
            {"$vectorSearch": stage},
            {"$project": {"_id": 0, self.id_field: 1, "score": {"$meta": "vectorSearchScore"}}},
        ]

    async def search(self, query_embedding: Sequence[float], top_k: int) -> List[Tuple[str, float]]:
        cursor = self.collection.aggregate(self._pipeline(query_embedding, top_k))
        hits = []
        async for doc in cursor:
            # Atlas maps cosine to (1 + cos) / 2, recover cosine distance
            score = float(doc.get("score", 0.0))
            hits.append((str(doc[self.id_field]), 2.0 - 2.0 * score))
        return hits


class InMemoryVectorIndex:
    """Brute-force cosine index, useful for small pools and local runs"""

    def __init__(self, name: str = "in_memory"):
        self.name = name
        self._ids: List[str] = []
        self._vectors: List[np.ndarray] = []

    def __len__(self):
        return len(self._ids)

    def add(self, entity_id: str, embedding: Sequence[float]) -> None:
        vec = np.asarray(embedding, dtype=np.float64)
        if self._vectors and vec.shape != self._vectors[0].shape:
            raise ValueError(f"Expected dimension {self._vectors[0].shape[0]}, got {vec.shape[0]}")
        if entity_id in self._ids:
            self._vectors[self._ids.index(entity_id)] = vec
            return
        self._ids.append(entity_id)
        self._vectors.append(vec)

    def remove(self, entity_id: str) -> None:
        if entity_id in self._ids:
            i = self._ids.index(entity_id)
            del self._ids[i]
            del self._vectors[i]

    async def search(self, query_embedding: Sequence[float], top_k: int) -> List[Tuple[str, float]]:
        if not self._ids:
            return []
        q = np.asarray(query_embedding, dtype=np.float64)
        matrix = np.vstack(self._vectors)
        if q.shape[0] != matrix.shape[1]:
            raise ValueError(f"Query dimension {q.shape[0]} does not match index dimension {matrix.shape[1]}")

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
        dots = matrix @ q
        sims = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
        distances = 1.0 - np.clip(sims, -1.0, 1.0)
        order = np.argsort(distances, kind="stable")[:top_k]
        return [(self._ids[i], float(distances[i])) for i in order]


class VectorRetriever:
    """Bounds and normalizes neighbour lookups against a VectorIndex"""

    def __init__(self, index: VectorIndex, max_top_k: int = 50):
        self.index = index
        self.max_top_k = max_top_k

    async def search(self, query_embedding: Sequence[float], top_k: int) -> List[Neighbor]:
        k = max(1, min(int(top_k), self.max_top_k))
        index_name = getattr(self.index, "name", type(self.index).__name__)
        try:
            hits = await self.index.search(query_embedding, k)
        except Exception as e:
            logger.error(f"Vector search on {index_name} failed (top_k={k}): {e}")
            raise RetrievalError(
                f"Vector search failed: {e}", index_name=index_name, top_k=k, cause=e
            ) from e

        # index order is authoritative; only truncate
        neighbors = [Neighbor(entity_id=str(eid), distance=float(d)) for eid, d in hits[:k]]
        logger.debug(f"Vector search on {index_name} returned {len(neighbors)}/{k} neighbours")
        return neighbors
