from typing import Sequence

import numpy as np

from talent_match.utils.exceptions import DimensionMismatchError


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between two equal-length vectors, in [-1, 1].

    A zero vector has no direction; its similarity to anything is 0.0.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    den = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if den == 0.0:
        return 0.0
    num = float(np.dot(va, vb))
    return max(-1.0, min(1.0, num / den))


def similarity_to_distance(similarity: float) -> float:
    # cosine distance: 0 identical, 2 opposite
    return 1.0 - similarity


def distance_to_score(distance: float) -> float:
    """Map an index distance (0 = identical) onto a 0..100 percentage."""
    score = max(0.0, 1.0 - distance / 2.0) * 100.0
    return max(0.0, min(100.0, score))
