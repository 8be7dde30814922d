"""Tests for cosine similarity and top-k ranking."""

import pytest

from core.errors import DimensionMismatch
from core.state import TextChunk
from vector_store.embedding import EmbeddingVector
from vector_store.similarity import cosine_similarity, rank_top_k


def _chunk(chunk_id, text, values):
    return TextChunk(id=chunk_id, text=text, embedding=EmbeddingVector(values))


@pytest.fixture
def candidates():
    return [
        _chunk(1, "east", [1.0, 0.0, 0.0]),
        _chunk(2, "north", [0.0, 1.0, 0.0]),
        _chunk(3, "north-east", [1.0, 1.0, 0.0]),
        _chunk(4, "west", [-1.0, 0.0, 0.0]),
    ]


class TestCosineSimilarity:
    def test_self_similarity_is_one(self):
        vector = EmbeddingVector([0.3, -1.2, 4.5, 0.01])
        assert cosine_similarity(vector, vector) == pytest.approx(1.0, abs=1e-6)

    def test_opposite_and_orthogonal(self):
        a = EmbeddingVector([1.0, 0.0])
        assert cosine_similarity(a, EmbeddingVector([-2.0, 0.0])) == pytest.approx(-1.0)
        assert cosine_similarity(a, EmbeddingVector([0.0, 3.0])) == pytest.approx(0.0)

    def test_magnitude_does_not_matter(self):
        a = EmbeddingVector([1.0, 2.0, 3.0])
        b = EmbeddingVector([10.0, 20.0, 30.0])
        assert cosine_similarity(a, b) == pytest.approx(1.0, abs=1e-6)

    def test_zero_vector_scores_zero(self):
        zero = EmbeddingVector([0.0, 0.0, 0.0])
        other = EmbeddingVector([1.0, 2.0, 3.0])
        assert cosine_similarity(zero, other) == 0.0
        assert cosine_similarity(zero, zero) == 0.0

    def test_result_is_bounded(self):
        pairs = [
            ([1e30, 1e30], [1e30, 1e30]),
            ([1e-30, 2e-30], [3e-30, -1e-30]),
            ([0.1, 0.2, 0.3], [-0.3, -0.2, -0.1]),
        ]
        for a, b in pairs:
            score = cosine_similarity(EmbeddingVector(a), EmbeddingVector(b))
            assert -1.0 <= score <= 1.0

    def test_dimension_mismatch(self):
        with pytest.raises(DimensionMismatch):
            cosine_similarity(EmbeddingVector([1.0, 2.0]), EmbeddingVector([1.0]))


class TestRankTopK:
    def test_orders_by_descending_score(self, candidates):
        query = EmbeddingVector([1.0, 0.2, 0.0])
        ranked = rank_top_k(query, candidates, k=4)
        assert [r.chunk.text for r in ranked] == ["east", "north-east", "north", "west"]
        scores = [r.score for r in ranked]
        assert scores == sorted(scores, reverse=True)

    def test_ties_keep_candidate_order(self):
        same = [1.0, 1.0]
        chunks = [_chunk(i, f"t{i}", same) for i in range(1, 6)]
        ranked = rank_top_k(EmbeddingVector([2.0, 2.0]), chunks, k=5)
        assert [r.chunk.id for r in ranked] == [1, 2, 3, 4, 5]

    def test_repeated_calls_are_identical(self, candidates):
        query = EmbeddingVector([0.5, 0.5, 0.1])
        first = rank_top_k(query, candidates, k=3)
        second = rank_top_k(query, candidates, k=3)
        assert [(r.chunk.id, r.score) for r in first] == [
            (r.chunk.id, r.score) for r in second
        ]

    def test_k_limits(self, candidates):
        query = EmbeddingVector([1.0, 0.0, 0.0])
        assert rank_top_k(query, candidates, k=0) == []
        assert rank_top_k(query, candidates, k=-3) == []
        assert len(rank_top_k(query, candidates, k=2)) == 2
        assert len(rank_top_k(query, candidates, k=1000)) == len(candidates)

    def test_empty_candidates(self):
        assert rank_top_k(EmbeddingVector([1.0]), [], k=5) == []

    def test_candidates_without_embedding_are_not_scored(self, candidates):
        pending = TextChunk(id=99, text="pending")
        ranked = rank_top_k(EmbeddingVector([1.0, 0.0, 0.0]), candidates + [pending], 10)
        assert "pending" not in [r.chunk.text for r in ranked]
        assert len(ranked) == len(candidates)

    def test_dimension_mismatch(self, candidates):
        with pytest.raises(DimensionMismatch):
            rank_top_k(EmbeddingVector([1.0, 0.0]), candidates, k=2)
