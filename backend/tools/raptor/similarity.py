"""
Vector similarity helpers shared by the clustering stages.
"""

from typing import Sequence

import numpy as np

from errors import InvalidInputError


def _as_pair(a: Sequence[float], b: Sequence[float]):
    if a is None or b is None:
        raise InvalidInputError("Embedding vectors cannot be None", error_type="embedding")

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise InvalidInputError(
            "Embedding vectors must have the same length",
            expected=str(va.shape[0] if va.ndim else 0),
            received=str(vb.shape[0] if vb.ndim else 0),
            error_type="embedding",
        )
    return va, vb


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity in [-1, 1]; 0.0 when either vector has zero norm."""
    va, vb = _as_pair(a, b)

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    return float(np.dot(va, vb) / (norm_a * norm_b))


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    va, vb = _as_pair(a, b)
    return float(np.linalg.norm(va - vb))
