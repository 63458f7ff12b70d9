"""
Cosine-similarity ranking by linear scan.

Every query scores every candidate, O(corpus size x dimension). There is no
index; corpora beyond a few hundred thousand vectors need a dedicated
nearest-neighbour index instead.
"""

from typing import Iterable, List

import numpy as np

from .codec import VectorLike
from .types import Ranked


def _scale(a: np.ndarray) -> np.ndarray:
    """Divide by the largest absolute component so norms neither overflow nor underflow."""
    largest = np.max(np.abs(a)) if a.size else 0.0
    if largest == 0 or not np.isfinite(largest):
        return a
    return a / largest


def _scale_rows(matrix: np.ndarray) -> np.ndarray:
    if matrix.shape[1] == 0:
        return matrix
    largest = np.abs(matrix).max(axis=1, keepdims=True)
    largest = np.where(np.isfinite(largest) & (largest > 0), largest, 1.0)
    return matrix / largest


def cosine_similarity(vec_a: VectorLike, vec_b: VectorLike) -> float:
    """
    Compute cosine similarity between two vectors.

    Returns:
        dot(a, b) / (|a| * |b|), in [-1, 1]; NaN when either vector has zero norm

    Raises:
        ValueError: If the vectors have different lengths
    """
    a = np.asarray(vec_a, dtype=np.float64)
    b = np.asarray(vec_b, dtype=np.float64)

    if a.shape != b.shape:
        raise ValueError(f"Vector dimensions must match: {a.shape} != {b.shape}")

    # Cosine is scale-invariant
    a = _scale(a)
    b = _scale(b)

    norm_a = np.sqrt(np.dot(a, a))
    norm_b = np.sqrt(np.dot(b, b))

    if norm_a == 0 or norm_b == 0:
        return float("nan")

    return float(np.dot(a, b) / (norm_a * norm_b))


def rank(query: VectorLike, candidates: Iterable[VectorLike]) -> List[Ranked]:
    """
    Score every candidate against the query, best first.

    The sort is stable, so equal scores keep candidate order. Undefined (NaN)
    scores sort after every real score.

    Raises:
        ValueError: If a candidate's length differs from the query's
    """
    q = np.asarray(query, dtype=np.float64)
    vectors = [np.asarray(c, dtype=np.float64) for c in candidates]

    if not vectors:
        return []

    for v in vectors:
        if v.shape != q.shape:
            raise ValueError(f"Vector dimensions must match: {q.shape} != {v.shape}")

    matrix = _scale_rows(np.vstack(vectors))
    q = _scale(q)
    denominators = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)

    with np.errstate(divide="ignore", invalid="ignore"):
        scores = matrix @ q / denominators
    scores[denominators == 0] = np.nan

    # argsort places NaN last; negate for descending order
    order = np.argsort(-scores, kind="stable")

    return [Ranked(score=float(scores[i]), vector=vectors[i]) for i in order]
