import pytest

from talent_match.services.similarity import cosine_similarity, distance_to_score, similarity_to_distance
from talent_match.utils.exceptions import DimensionMismatchError


class TestCosineSimilarity:
    """Test cases for cosine similarity"""

    def test_symmetric(self):
        a = [0.3, -1.2, 4.0, 0.5]
        b = [1.0, 0.2, -0.7, 2.2]
        assert cosine_similarity(a, b) == pytest.approx(cosine_similarity(b, a))

    def test_self_similarity_is_one(self):
        a = [0.1, 0.2, 0.3, 0.4]
        assert cosine_similarity(a, a) == pytest.approx(1.0)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 3.0]) == pytest.approx(0.0)

    def test_zero_vector_yields_zero(self):
        assert cosine_similarity([0.0, 0.0, 0.0], [1.0, 2.0, 3.0]) == 0.0

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatchError) as exc_info:
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])
        assert exc_info.value.details == {"left_dimension": 2, "right_dimension": 3}


class TestDistanceToScore:
    """Test cases for the distance to percentage mapping"""

    @pytest.mark.parametrize("distance,expected", [(0.0, 100.0), (1.0, 50.0), (2.0, 0.0), (0.5, 75.0)])
    def test_known_values(self, distance, expected):
        assert distance_to_score(distance) == pytest.approx(expected)

    def test_clamped(self):
        assert distance_to_score(3.5) == 0.0
        assert distance_to_score(-0.5) == 100.0

    def test_monotone_non_increasing(self):
        distances = [i / 100 for i in range(0, 201)]
        scores = [distance_to_score(d) for d in distances]
        assert all(later <= earlier for earlier, later in zip(scores, scores[1:]))

    def test_similarity_feeds_same_mapping(self):
        assert similarity_to_distance(1.0) == 0.0
        assert distance_to_score(similarity_to_distance(0.0)) == pytest.approx(50.0)
