"""
K-Means fallback clusterer.

Used when no vector searcher is available (no graph can be built) or when
every neighbor lookup failed. Deterministic: no random init, the seeds are
spread evenly over the embedded articles sorted by ID.
"""

import logging
from typing import List, Sequence, Tuple

import numpy as np

from ..errors import EmptyInputError
from ..schemas.articles import Article
from ..schemas.base import DistanceMetric
from ..schemas.clusters import TopicCluster
from ..tools.vectors import normalize_rows
from .assembly import make_cluster

logger = logging.getLogger(__name__)


def default_k(n: int, min_k: int = 2, max_k: int = 5) -> int:
    """n // 3 clamped to [min_k, max_k], never more than n."""
    if n <= 0:
        return 0
    k = max(min_k, min(max_k, n // 3))
    return max(1, min(k, n))


def _embedding_matrix(articles: Sequence[Article]) -> np.ndarray:
    dims = {len(a.embedding) for a in articles}
    if len(dims) > 1:
        raise ValueError(f"mixed embedding dimensions: {sorted(dims)}")
    return np.array([a.embedding for a in articles], dtype=float)


def _distances(points: np.ndarray, centroids: np.ndarray, metric: DistanceMetric) -> np.ndarray:
    if metric == DistanceMetric.EUCLIDEAN:
        return np.linalg.norm(points[:, None, :] - centroids[None, :, :], axis=2)
    sims = normalize_rows(points) @ normalize_rows(centroids).T
    return 1.0 - np.clip(sims, -1.0, 1.0)


def _run_kmeans(
    points: np.ndarray,
    k: int,
    metric: DistanceMetric,
    max_iterations: int,
) -> Tuple[np.ndarray, int]:
    """Lloyd iterations from evenly spaced seeds. Returns (assignments, iterations)."""
    n = len(points)
    centroids = np.array([points[j * n // k] for j in range(k)], dtype=float)
    assignments = None

    iterations = 0
    for iterations in range(1, max(1, max_iterations) + 1):
        # argmin picks the lowest centroid index on ties
        new_assignments = np.argmin(_distances(points, centroids, metric), axis=1)
        if assignments is not None and np.array_equal(new_assignments, assignments):
            break
        assignments = new_assignments
        for c in range(k):
            members = points[assignments == c]
            if len(members):
                centroids[c] = members.mean(axis=0)

    return assignments, iterations


def cluster_by_centroid(
    articles: Sequence[Article],
    k: int,
    metric: DistanceMetric = DistanceMetric.COSINE,
    max_iterations: int = 50,
) -> List[TopicCluster]:
    """Partition articles into at most k clusters by embedding.

    Empty clusters are dropped. Articles without a usable embedding are
    appended as singleton clusters after the K-Means clusters.

    Raises:
        EmptyInputError: no article has a usable embedding.
    """
    articles = list(articles)
    metric = DistanceMetric(metric)
    embedded = sorted((a for a in articles if a.has_embedding), key=lambda a: a.id)
    if not embedded:
        raise EmptyInputError("no articles with usable embeddings for k-means")

    k = max(1, min(int(k), len(embedded)))
    points = _embedding_matrix(embedded)
    assignments, iterations = _run_kmeans(points, k, metric, max_iterations)

    position = {a.id: i for i, a in enumerate(articles)}
    groups: List[List[Article]] = [[] for _ in range(k)]
    for article, c in zip(embedded, assignments):
        groups[int(c)].append(article)

    clusters: List[TopicCluster] = []
    for members in groups:
        if not members:
            continue
        members.sort(key=lambda a: position[a.id])
        n = len(clusters)
        clusters.append(make_cluster(f"kmeans_cluster_{n}", members, f"Cluster {n + 1}", "kmeans"))

    for article in articles:
        if not article.has_embedding:
            n = len(clusters)
            clusters.append(make_cluster(f"kmeans_cluster_{n}", [article], f"Cluster {n + 1}", "kmeans"))

    logger.info(
        f"K-Means: {len(clusters)} clusters (k={k}, metric={metric.value}, "
        f"{iterations} iterations) from {len(articles)} articles"
    )
    return clusters


def find_optimal_k(
    articles: Sequence[Article],
    min_k: int = 2,
    max_k: int = 5,
    metric: DistanceMetric = DistanceMetric.COSINE,
    max_iterations: int = 50,
) -> int:
    """Pick k in [min_k, max_k] by best mean silhouette; smaller k wins ties.

    Falls back to default_k when there are too few articles for a silhouette
    (it needs 2 <= labels <= n - 1).
    """
    from sklearn.metrics import silhouette_score

    metric = DistanceMetric(metric)
    embedded = sorted((a for a in articles if a.has_embedding), key=lambda a: a.id)
    n = len(embedded)
    if n < 3:
        return default_k(n, min_k, max_k)

    points = _embedding_matrix(embedded)
    best_k, best_score = None, -2.0
    for k in range(max(2, min_k), min(max_k, n - 1) + 1):
        assignments, _ = _run_kmeans(points, k, metric, max_iterations)
        n_labels = len(set(assignments.tolist()))
        if n_labels < 2 or n_labels > n - 1:
            continue
        score = float(silhouette_score(points, assignments, metric=metric.value))
        logger.debug(f"K-Means k={k}: silhouette={score:.3f}")
        if score > best_score:
            best_k, best_score = k, score

    if best_k is None:
        return default_k(n, min_k, max_k)
    logger.info(f"K-Means optimal k={best_k} (silhouette={best_score:.3f})")
    return best_k
