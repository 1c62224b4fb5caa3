"""
Vector numerics shared by graph building, both clusterers and the evaluator.

All functions are pure: no caching, no module state. Inputs may be plain
lists or numpy arrays; scalar results are returned as Python floats.

Conventions:
- cosine similarity is clipped to [-1, 1] and is 0.0 when the vectors differ
  in length or either has zero norm
- cosine distance = 1 - similarity, so it lies in [0, 2]
"""

import logging
import math
from typing import List, Optional, Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity as _sk_cosine_similarity

logger = logging.getLogger(__name__)


def is_valid_embedding(vec: Optional[Sequence[float]]) -> bool:
    """Non-empty, all finite, non-zero norm."""
    if vec is None or len(vec) == 0:
        return False
    arr = np.asarray(vec, dtype=float)
    if arr.ndim != 1 or not np.all(np.isfinite(arr)):
        return False
    return bool(np.any(arr != 0.0))


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity between two vectors (range: -1 to 1)."""
    if a is None or b is None or len(a) != len(b) or len(a) == 0:
        return 0.0

    vec_a = np.asarray(a, dtype=float)
    vec_b = np.asarray(b, dtype=float)
    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    sim = float(np.dot(vec_a, vec_b) / (norm_a * norm_b))
    return max(-1.0, min(1.0, sim))


def cosine_distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine distance between two vectors (range: 0 to 2)."""
    return 1.0 - cosine_similarity(a, b)


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    if len(a) != len(b):
        return math.inf
    return float(np.linalg.norm(np.asarray(a, dtype=float) - np.asarray(b, dtype=float)))


def mean_vector(vectors: Sequence[Sequence[float]]) -> Optional[List[float]]:
    """Element-wise mean; None for an empty input."""
    if len(vectors) == 0:
        return None
    return np.mean(np.asarray(vectors, dtype=float), axis=0).tolist()


def normalize_rows(matrix: np.ndarray) -> np.ndarray:
    """L2-normalize each row; zero rows stay zero."""
    matrix = np.asarray(matrix, dtype=float)
    norms = np.linalg.norm(matrix, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return matrix / norms


def similarity_matrix(a: np.ndarray, b: Optional[np.ndarray] = None) -> np.ndarray:
    """Pairwise cosine similarity between the rows of a (and b), clipped to [-1, 1]."""
    a = np.asarray(a, dtype=float)
    if a.size == 0:
        return np.zeros((0, 0))
    sims = _sk_cosine_similarity(a, a if b is None else np.asarray(b, dtype=float))
    return np.clip(sims, -1.0, 1.0)


def mean_pairwise_cosine(vectors: np.ndarray) -> float:
    """Mean cosine similarity over distinct pairs; 1.0 for fewer than two vectors."""
    vectors = np.asarray(vectors, dtype=float)
    n = len(vectors)
    if n < 2:
        return 1.0
    sims = similarity_matrix(vectors)
    upper = sims[np.triu_indices(n, k=1)]
    return float(np.mean(upper))
