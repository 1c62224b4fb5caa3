"""
Cluster coherence evaluation in the full embedding space.

Three numbers describe a topic clustering:
  - cohesion: mean pairwise cosine similarity inside each cluster
  - silhouette: how much closer each article is to its own cluster than to
    the nearest other cluster (cosine distance)
  - separation: mean cosine distance between cluster centroids

They are folded into a letter grade, a list of human-readable issues and a
pass/fail flag that the quality gate acts on.

The evaluator never raises: malformed embeddings (wrong dimension, NaN, zero
vectors, missing IDs) are dropped before any math, and an unexpected failure
is reported as a failed evaluation.

REF: Rousseeuw 1987 (silhouette coefficient).
"""

import logging
from collections import Counter
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..schemas.base import CoherenceGrade
from ..schemas.clusters import TopicCluster
from ..schemas.quality import CoherenceMetrics, QualityThresholds
from ..tools.vectors import cosine_distance, is_valid_embedding, normalize_rows

logger = logging.getLogger(__name__)


def _silhouette_value(a: float, b: float) -> float:
    if a < b:
        return 1.0 - a / b
    if a > b:
        return b / a - 1.0
    return 0.0


def grade_cluster_coherence(
    avg_silhouette: float,
    avg_cohesion: float,
    separation: float,
    thresholds: QualityThresholds,
) -> CoherenceGrade:
    """Letter grade from the three averages."""
    if (
        avg_silhouette >= thresholds.grade_a.min_silhouette
        and avg_cohesion >= thresholds.min_intra_cluster_sim + 0.1
        and separation >= thresholds.min_inter_cluster_dist
    ):
        return CoherenceGrade.A
    if avg_silhouette >= thresholds.grade_b.min_silhouette and avg_cohesion >= thresholds.min_intra_cluster_sim:
        return CoherenceGrade.B
    if avg_silhouette >= thresholds.grade_c.min_silhouette:
        return CoherenceGrade.C
    return CoherenceGrade.D


class ClusterCoherenceEvaluator:
    """Computes CoherenceMetrics for a list of clusters."""

    def __init__(self, thresholds: Optional[QualityThresholds] = None):
        self.thresholds = thresholds or QualityThresholds()

    def evaluate(
        self,
        clusters: Sequence[TopicCluster],
        embeddings: Mapping[str, Sequence[float]],
    ) -> CoherenceMetrics:
        clusters = list(clusters or [])
        try:
            return self._evaluate(clusters, embeddings or {})
        except Exception as e:
            logger.error(f"Coherence evaluation failed: {e}", exc_info=True)
            return CoherenceMetrics(
                num_clusters=len(clusters),
                num_articles=sum(len(c.article_ids) for c in clusters),
                grade=CoherenceGrade.D,
                issues=[f"Coherence evaluation failed: {e}"],
                passed=False,
            )

    # ── Internals ──

    def _usable_vectors(
        self,
        clusters: List[TopicCluster],
        embeddings: Mapping[str, Sequence[float]],
    ) -> Tuple[Dict[str, np.ndarray], int]:
        """Valid embeddings of clustered articles, restricted to the majority dimension."""
        valid: Dict[str, np.ndarray] = {}
        for cluster in clusters:
            for aid in cluster.article_ids:
                vec = embeddings.get(aid)
                if aid not in valid and is_valid_embedding(vec):
                    valid[aid] = np.asarray(vec, dtype=float)
        if not valid:
            return {}, 0

        dims = Counter(len(v) for v in valid.values())
        dim = dims.most_common(1)[0][0]
        dropped = len(valid) - dims[dim]
        if dropped:
            logger.warning(f"Coherence: ignoring {dropped} embeddings not of dimension {dim}")
        return {aid: v for aid, v in valid.items() if len(v) == dim}, dim

    def _evaluate(
        self,
        clusters: List[TopicCluster],
        embeddings: Mapping[str, Sequence[float]],
    ) -> CoherenceMetrics:
        t = self.thresholds
        num_articles = sum(len(c.article_ids) for c in clusters)
        issues: List[str] = []

        vectors, dim = self._usable_vectors(clusters, embeddings)

        # Raw and unit-normalized member matrices per cluster (None when no usable member)
        raw: List[Optional[np.ndarray]] = []
        unit: List[Optional[np.ndarray]] = []
        for cluster in clusters:
            rows = [vectors[aid] for aid in cluster.article_ids if aid in vectors]
            if rows:
                matrix = np.vstack(rows)
                raw.append(matrix)
                unit.append(normalize_rows(matrix))
            else:
                raw.append(None)
                unit.append(None)

        cohesions: List[float] = []
        silhouettes: List[float] = []
        for idx, cluster in enumerate(clusters):
            if not cluster.article_ids:
                issues.append(f"Cluster {idx} ({cluster.label}) is empty")
                continue

            cohesion = self._cohesion(cluster, unit[idx])
            silhouette = self._cluster_silhouette(idx, unit)
            cohesions.append(cohesion)
            silhouettes.append(silhouette)

            if cohesion < t.min_intra_cluster_sim:
                issues.append(
                    f"Cluster {idx} ({cluster.label}) has low cohesion: "
                    f"{cohesion:.2f} (min: {t.min_intra_cluster_sim:.2f})"
                )
            if silhouette < t.min_silhouette_score:
                issues.append(
                    f"Cluster {idx} ({cluster.label}) has low silhouette score: "
                    f"{silhouette:.2f} (min: {t.min_silhouette_score:.2f})"
                )

        separation = self._separation(clusters, raw, dim)
        if separation < t.min_inter_cluster_dist:
            issues.append(
                f"Low cluster separation: {separation:.2f} (min: {t.min_inter_cluster_dist:.2f})"
            )

        avg_cohesion = float(np.mean(cohesions)) if cohesions else 0.0
        avg_silhouette = float(np.mean(silhouettes)) if silhouettes else 0.0
        metrics = CoherenceMetrics(
            num_clusters=len(clusters),
            num_articles=num_articles,
            avg_cluster_size=num_articles / len(clusters) if clusters else 0.0,
            avg_silhouette=avg_silhouette,
            cluster_silhouettes=silhouettes,
            avg_intra_cluster_similarity=avg_cohesion,
            intra_cluster_similarities=cohesions,
            avg_inter_cluster_distance=separation,
            grade=grade_cluster_coherence(avg_silhouette, avg_cohesion, separation, t),
            issues=issues,
            passed=(
                avg_silhouette >= t.min_silhouette_score
                and avg_cohesion >= t.min_intra_cluster_sim
                and not issues
            ),
        )

        logger.info(
            f"Coherence: {metrics.num_clusters} clusters, silhouette={metrics.avg_silhouette:.3f}, "
            f"cohesion={metrics.avg_intra_cluster_similarity:.3f}, separation={separation:.3f}, "
            f"grade={metrics.grade}, issues={len(issues)}"
        )
        return metrics

    @staticmethod
    def _cohesion(cluster: TopicCluster, unit: Optional[np.ndarray]) -> float:
        if cluster.size <= 1 or unit is None or len(unit) <= 1:
            return 1.0
        sims = np.clip(unit @ unit.T, -1.0, 1.0)
        n = len(unit)
        upper = sims[np.triu_indices(n, k=1)]
        return float(np.clip(np.mean(upper), -1.0, 1.0))

    @staticmethod
    def _cluster_silhouette(idx: int, unit: List[Optional[np.ndarray]]) -> float:
        own = unit[idx]
        if own is None:
            return 0.0
        n = len(own)
        if n == 1:
            # Alone in its cluster: nothing to be far from, a(i) = 0
            a = np.zeros(1)
        else:
            own_dist = np.clip(1.0 - own @ own.T, 0.0, 2.0)
            a = (own_dist.sum(axis=1) - np.diag(own_dist)) / (n - 1)

        b = np.full(n, np.inf)
        for j, other in enumerate(unit):
            if j == idx or other is None:
                continue
            mean_dist = np.clip(1.0 - own @ other.T, 0.0, 2.0).mean(axis=1)
            b = np.minimum(b, mean_dist)
        # No other cluster with usable embeddings: treat as maximally separated
        b[np.isinf(b)] = 1.0

        scores = [_silhouette_value(float(ai), float(bi)) for ai, bi in zip(a, b)]
        return float(np.clip(np.mean(scores), -1.0, 1.0))

    @staticmethod
    def _separation(
        clusters: List[TopicCluster],
        raw: List[Optional[np.ndarray]],
        dim: int,
    ) -> float:
        centroids = []
        for cluster, members in zip(clusters, raw):
            if cluster.centroid is not None and len(cluster.centroid) == dim and is_valid_embedding(cluster.centroid):
                centroids.append(cluster.centroid)
            elif members is not None:
                centroids.append(members.mean(axis=0))
        if len(centroids) < 2:
            return 1.0

        distances = [
            cosine_distance(centroids[i], centroids[j])
            for i in range(len(centroids))
            for j in range(i + 1, len(centroids))
        ]
        return float(np.clip(np.mean(distances), 0.0, 2.0))


def _quality_marker(value: float) -> str:
    if value >= 0.5:
        return "good"
    if value >= 0.3:
        return "fair"
    return "poor"


def format_report(
    metrics: CoherenceMetrics,
    clusters: Sequence[TopicCluster],
    thresholds: Optional[QualityThresholds] = None,
) -> str:
    """Human-readable coherence report with a per-cluster table."""
    t = thresholds or QualityThresholds()
    lines = [
        "=== Cluster Coherence Report ===",
        f"Grade: {metrics.grade}",
        f"Clusters: {metrics.num_clusters} | Articles: {metrics.num_articles} | "
        f"Avg size: {metrics.avg_cluster_size:.1f}",
        f"Silhouette:  {metrics.avg_silhouette:.3f} (min {t.min_silhouette_score:.2f})",
        f"Cohesion:    {metrics.avg_intra_cluster_similarity:.3f} (min {t.min_intra_cluster_sim:.2f})",
        f"Separation:  {metrics.avg_inter_cluster_distance:.3f} (min {t.min_inter_cluster_dist:.2f})",
        "",
        f"{'#':>3}  {'Label':<30} {'Size':>5} {'Cohesion':>9} {'Silhouette':>11}  Quality",
    ]

    # Per-cluster lists skip empty clusters
    k = 0
    for idx, cluster in enumerate(clusters):
        label = cluster.label if len(cluster.label) <= 30 else cluster.label[:27] + "..."
        if not cluster.article_ids or k >= len(metrics.cluster_silhouettes):
            lines.append(f"{idx:>3}  {label:<30} {cluster.size:>5} {'-':>9} {'-':>11}  empty")
            continue
        cohesion = metrics.intra_cluster_similarities[k]
        silhouette = metrics.cluster_silhouettes[k]
        k += 1
        lines.append(
            f"{idx:>3}  {label:<30} {cluster.size:>5} {cohesion:>9.3f} {silhouette:>11.3f}  "
            f"{_quality_marker(silhouette)}"
        )

    if metrics.issues:
        lines.append("")
        lines.append(f"Issues ({len(metrics.issues)}):")
        lines.extend(f"  - {issue}" for issue in metrics.issues)
    lines.append(f"Result: {'PASSED' if metrics.passed else 'FAILED'}")
    return "\n".join(lines)
