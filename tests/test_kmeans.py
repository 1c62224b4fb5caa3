import pytest

from digest_topics.clustering.kmeans import cluster_by_centroid, default_k, find_optimal_k
from digest_topics.errors import EmptyInputError
from digest_topics.schemas.articles import Article
from digest_topics.schemas.base import DistanceMetric


def build_articles(vectors):
    return [Article(id=article_id, embedding=vec) for article_id, vec in vectors]


TWO_GROUPS = [
    ("a1", [1.0, 0.0, 0.0]),
    ("a2", [0.9, 0.1, 0.0]),
    ("a3", [0.95, 0.0, 0.05]),
    ("b1", [0.0, 1.0, 0.0]),
    ("b2", [0.1, 0.9, 0.0]),
    ("b3", [0.0, 0.95, 0.05]),
]

THREE_GROUPS = TWO_GROUPS + [
    ("c1", [0.0, 0.0, 1.0]),
    ("c2", [0.02, 0.0, 0.98]),
    ("c3", [0.0, 0.03, 0.97]),
]


def test_default_k():
    assert default_k(0) == 0
    assert default_k(1) == 1
    assert default_k(2) == 2
    assert default_k(6) == 2
    assert default_k(9) == 3
    assert default_k(30) == 5


def test_two_groups_are_recovered():
    clusters = cluster_by_centroid(build_articles(TWO_GROUPS), k=2)

    assert [c.article_ids for c in clusters] == [["a1", "a2", "a3"], ["b1", "b2", "b3"]]
    assert [c.cluster_id for c in clusters] == ["kmeans_cluster_0", "kmeans_cluster_1"]
    assert all(c.algorithm == "kmeans" for c in clusters)


def test_euclidean_metric():
    clusters = cluster_by_centroid(build_articles(TWO_GROUPS), k=2, metric=DistanceMetric.EUCLIDEAN)

    assert sorted(sorted(c.article_ids) for c in clusters) == [["a1", "a2", "a3"], ["b1", "b2", "b3"]]


def test_identical_embeddings_drop_empty_clusters():
    articles = build_articles([(f"x{i}", [0.5, 0.5]) for i in range(4)])

    clusters = cluster_by_centroid(articles, k=2)

    assert len(clusters) == 1
    assert clusters[0].article_ids == ["x0", "x1", "x2", "x3"]


def test_unembedded_articles_become_trailing_singletons():
    articles = build_articles(TWO_GROUPS) + [Article(id="orphan")]

    clusters = cluster_by_centroid(articles, k=2)

    assert clusters[-1].article_ids == ["orphan"]
    assert clusters[-1].centroid is None
    assert sum(c.size for c in clusters) == 7


def test_k_is_clamped_to_article_count():
    clusters = cluster_by_centroid(build_articles(TWO_GROUPS[:2]), k=10)

    assert 1 <= len(clusters) <= 2
    assert sorted(aid for c in clusters for aid in c.article_ids) == ["a1", "a2"]


def test_no_embeddings_raises():
    with pytest.raises(EmptyInputError):
        cluster_by_centroid([Article(id="a"), Article(id="b")], k=2)


def test_deterministic_output():
    first = cluster_by_centroid(build_articles(THREE_GROUPS), k=3)
    second = cluster_by_centroid(build_articles(list(reversed(THREE_GROUPS))), k=3)

    assert sorted(sorted(c.article_ids) for c in first) == sorted(sorted(c.article_ids) for c in second)


def test_find_optimal_k_prefers_natural_grouping():
    assert find_optimal_k(build_articles(THREE_GROUPS), min_k=2, max_k=5) == 3


def test_find_optimal_k_small_input_falls_back():
    assert find_optimal_k(build_articles(TWO_GROUPS[:2])) == 2
