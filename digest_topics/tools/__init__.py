# Tools module
from .vectors import (
    is_valid_embedding,
    cosine_similarity,
    cosine_distance,
    euclidean_distance,
    mean_vector,
    normalize_rows,
    similarity_matrix,
    mean_pairwise_cosine,
)
from .vector_search import VectorSearcher, InMemoryVectorSearcher, index_by_id

__all__ = [
    # Numerics
    "is_valid_embedding",
    "cosine_similarity",
    "cosine_distance",
    "euclidean_distance",
    "mean_vector",
    "normalize_rows",
    "similarity_matrix",
    "mean_pairwise_cosine",
    # Vector search
    "VectorSearcher",
    "InMemoryVectorSearcher",
    "index_by_id",
]
