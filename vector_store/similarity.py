"""Brute-force cosine similarity ranking over a snapshot of chunks.

Every query scores every candidate: O(n * D) time and O(n) extra memory.
There is no index structure. This is fine while the n x D matrix fits in
memory, i.e. corpora up to the low hundreds of thousands of chunks.
"""

from typing import List, Sequence

import numpy as np

from core.errors import DimensionMismatch
from core.state import TextChunk
from vector_store.base import ScoredChunk
from vector_store.embedding import EmbeddingVector


def _check_dimensions(expected: int, actual: int) -> None:
    if expected != actual:
        raise DimensionMismatch(
            f"Vector dimensions differ: {expected} != {actual}",
            expected=expected,
            actual=actual,
        )


def _cosine_scores(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine of ``query`` against each row of ``matrix``; zero norms score 0."""
    query = query.astype(np.float64)
    matrix = matrix.astype(np.float64)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.zeros(len(matrix), dtype=np.float64)
    np.divide(dots, norms, out=scores, where=norms > 0)
    return np.clip(scores, -1.0, 1.0)


def cosine_similarity(a: EmbeddingVector, b: EmbeddingVector) -> float:
    """Return dot(a, b) / (|a| * |b|), or 0.0 when either norm is zero.

    A zero result for a zero vector is not evidence of orthogonality.
    """
    _check_dimensions(len(a), len(b))
    return float(_cosine_scores(a.as_array(), b.as_array().reshape(1, -1))[0])


def rank_top_k(
    query: EmbeddingVector, candidates: Sequence[TextChunk], k: int
) -> List[ScoredChunk]:
    """Rank candidates by cosine similarity to ``query``, best first.

    Equal scores keep their candidate order, so results are deterministic.
    Candidates without an embedding are not scored. Returns at most ``k``
    entries and nothing for ``k <= 0``.
    """
    if k <= 0:
        return []
    scorable = [c for c in candidates if c.embedding is not None]
    if not scorable:
        return []
    for chunk in scorable:
        _check_dimensions(len(query), len(chunk.embedding))
    matrix = np.vstack([chunk.embedding.as_array() for chunk in scorable])
    scores = _cosine_scores(query.as_array(), matrix)
    order = np.argsort(-scores, kind="stable")[:k]
    return [ScoredChunk(chunk=scorable[i], score=float(scores[i])) for i in order]
