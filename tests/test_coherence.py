import numpy as np
import pytest

from digest_topics.quality.coherence import ClusterCoherenceEvaluator, format_report, grade_cluster_coherence
from digest_topics.schemas.base import CoherenceGrade
from digest_topics.schemas.clusters import TopicCluster
from digest_topics.schemas.quality import QualityThresholds


def build_cluster(idx, article_ids, label=None, centroid=None):
    return TopicCluster(
        cluster_id=f"c{idx}",
        label=label or f"Cluster {idx + 1}",
        article_ids=article_ids,
        centroid=centroid,
    )


TWO_GROUPS = {
    "a1": [1.0, 0.0, 0.0],
    "a2": [0.9, 0.1, 0.0],
    "a3": [0.95, 0.0, 0.05],
    "b1": [0.0, 1.0, 0.0],
    "b2": [0.1, 0.9, 0.0],
    "b3": [0.0, 0.95, 0.05],
}


def test_well_separated_clusters_pass():
    clusters = [build_cluster(0, ["a1", "a2", "a3"]), build_cluster(1, ["b1", "b2", "b3"])]

    metrics = ClusterCoherenceEvaluator().evaluate(clusters, TWO_GROUPS)

    assert metrics.num_clusters == 2
    assert metrics.num_articles == 6
    assert metrics.avg_cluster_size == pytest.approx(3.0)
    assert metrics.avg_silhouette > 0.5
    assert metrics.avg_intra_cluster_similarity > 0.9
    assert metrics.avg_inter_cluster_distance > 0.5
    assert metrics.issues == []
    assert metrics.passed
    assert metrics.grade == CoherenceGrade.A.value


def test_single_article():
    metrics = ClusterCoherenceEvaluator().evaluate([build_cluster(0, ["a1"])], {"a1": [1.0, 0.0]})

    assert metrics.num_clusters == 1
    assert metrics.intra_cluster_similarities == [1.0]
    assert metrics.avg_intra_cluster_similarity == 1.0
    assert metrics.avg_inter_cluster_distance == 1.0
    assert metrics.cluster_silhouettes == [1.0]
    assert metrics.issues == []
    assert metrics.passed


def test_isolated_outlier_does_not_fail_evaluation():
    embeddings = dict(TWO_GROUPS, z=[0.0, 0.0, 1.0])
    clusters = [
        build_cluster(0, ["a1", "a2"]),
        build_cluster(1, ["b1", "b2"]),
        build_cluster(2, ["z"], label="Z"),
    ]

    metrics = ClusterCoherenceEvaluator().evaluate(clusters, embeddings)

    assert metrics.cluster_silhouettes[2] == pytest.approx(1.0)
    assert metrics.cluster_silhouettes[0] > 0.9
    assert metrics.issues == []
    assert metrics.passed


def test_singleton_on_top_of_another_cluster_scores_zero():
    embeddings = {"a1": [1.0, 0.0], "a2": [1.0, 0.0], "dup": [1.0, 0.0]}
    clusters = [build_cluster(0, ["a1", "a2"]), build_cluster(1, ["dup"])]

    metrics = ClusterCoherenceEvaluator().evaluate(clusters, embeddings)

    assert metrics.cluster_silhouettes[1] == pytest.approx(0.0)
    assert not metrics.passed


def test_identical_embeddings_single_cluster():
    embeddings = {f"x{i}": [0.3, 0.4, 0.5] for i in range(4)}
    clusters = [build_cluster(0, list(embeddings))]

    metrics = ClusterCoherenceEvaluator().evaluate(clusters, embeddings)

    assert metrics.avg_intra_cluster_similarity == pytest.approx(1.0)
    assert metrics.avg_silhouette == pytest.approx(1.0)
    assert metrics.avg_inter_cluster_distance == 1.0
    assert metrics.issues == []
    assert metrics.passed


def test_overlapping_clusters_fail_with_issues():
    embeddings = {
        "p1": [1.0, 0.1, 0.0],
        "p2": [0.1, 1.0, 0.0],
        "q1": [1.0, 0.12, 0.0],
        "q2": [0.12, 1.0, 0.0],
    }
    clusters = [build_cluster(0, ["p1", "p2"]), build_cluster(1, ["q1", "q2"])]

    metrics = ClusterCoherenceEvaluator(QualityThresholds(min_silhouette_score=0.3)).evaluate(clusters, embeddings)

    assert metrics.avg_inter_cluster_distance < 0.3
    assert metrics.issues
    assert any("separation" in issue for issue in metrics.issues)
    assert not metrics.passed


def test_metric_ranges_on_arbitrary_partition():
    rng = np.random.default_rng(7)
    embeddings = {f"a{i}": rng.normal(size=8).tolist() for i in range(20)}
    ids = list(embeddings)
    clusters = [build_cluster(k, ids[k::4]) for k in range(4)]

    metrics = ClusterCoherenceEvaluator().evaluate(clusters, embeddings)

    assert -1.0 <= metrics.avg_silhouette <= 1.0
    assert all(-1.0 <= s <= 1.0 for s in metrics.cluster_silhouettes)
    assert all(-1.0 <= c <= 1.0 for c in metrics.intra_cluster_similarities)
    assert 0.0 <= metrics.avg_inter_cluster_distance <= 2.0


def test_malformed_embeddings_are_ignored():
    embeddings = {
        "a1": [1.0, 0.0, 0.0],
        "a2": [0.9, 0.1, 0.0],
        "bad_nan": [float("nan"), 0.0, 0.0],
        "bad_zero": [0.0, 0.0, 0.0],
        "bad_dim": [1.0, 0.0],
    }
    clusters = [build_cluster(0, ["a1", "a2", "bad_nan", "bad_zero", "bad_dim", "missing"])]

    metrics = ClusterCoherenceEvaluator().evaluate(clusters, embeddings)

    assert metrics.num_articles == 6
    assert metrics.avg_intra_cluster_similarity > 0.9
    assert "Coherence evaluation failed" not in " ".join(metrics.issues)


def test_empty_cluster_reported():
    clusters = [build_cluster(0, ["a1", "a2", "a3"]), build_cluster(1, [], label="Ghost")]

    metrics = ClusterCoherenceEvaluator().evaluate(clusters, TWO_GROUPS)

    assert any("Ghost" in issue and "empty" in issue for issue in metrics.issues)
    assert len(metrics.cluster_silhouettes) == 1
    assert not metrics.passed


def test_no_clusters():
    metrics = ClusterCoherenceEvaluator().evaluate([], {})

    assert metrics.num_clusters == 0
    assert metrics.avg_silhouette == 0.0
    assert not metrics.passed


def test_grading():
    t = QualityThresholds()

    assert grade_cluster_coherence(0.6, 0.7, 0.5, t) == CoherenceGrade.A
    assert grade_cluster_coherence(0.6, 0.7, 0.1, t) == CoherenceGrade.B
    assert grade_cluster_coherence(0.45, 0.55, 0.5, t) == CoherenceGrade.B
    assert grade_cluster_coherence(0.35, 0.2, 0.5, t) == CoherenceGrade.C
    assert grade_cluster_coherence(0.1, 0.9, 0.9, t) == CoherenceGrade.D


def test_metrics_serialize_to_json():
    metrics = ClusterCoherenceEvaluator().evaluate([build_cluster(0, ["a1", "a2"])], TWO_GROUPS)

    payload = metrics.model_dump()
    assert payload["grade"] == metrics.grade
    assert '"passed"' in metrics.model_dump_json()


def test_format_report_lists_clusters():
    clusters = [
        build_cluster(0, ["a1", "a2", "a3"], label="Chips"),
        build_cluster(1, ["b1", "b2", "b3"], label="Energy"),
    ]
    metrics = ClusterCoherenceEvaluator().evaluate(clusters, TWO_GROUPS)

    report = format_report(metrics, clusters)

    assert "Cluster Coherence Report" in report
    assert "Chips" in report and "Energy" in report
    assert "PASSED" in report
