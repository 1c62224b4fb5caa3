from digest_topics.clustering.assembly import (
    MISC_CLUSTER_LABEL,
    centroid_of,
    clusters_from_groups,
    label_for,
    pool_small_clusters,
)
from digest_topics.schemas.articles import Article


def test_label_prefers_most_common_tag_or_theme():
    members = [
        Article(id="a", tag_ids=["chips"], theme_id="tech"),
        Article(id="b", theme_id="tech"),
        Article(id="c", tag_ids=["chips"]),
        Article(id="d", theme_id="tech"),
    ]

    assert label_for(members, "Cluster 1") == "tech"
    assert label_for([Article(id="e")], "Cluster 7") == "Cluster 7"


def test_centroid_skips_unembedded_members():
    members = [
        Article(id="a", embedding=[1.0, 0.0]),
        Article(id="b", embedding=[0.0, 1.0]),
        Article(id="c"),
    ]

    assert centroid_of(members) == [0.5, 0.5]
    assert centroid_of([Article(id="d")]) is None


def test_clusters_from_groups_keeps_input_order():
    articles = [Article(id=f"a{i}", embedding=[1.0, float(i)]) for i in range(4)]

    clusters = clusters_from_groups([[3, 1], [], [0, 2]], articles, algorithm="louvain")

    assert [c.cluster_id for c in clusters] == ["louvain_cluster_0", "louvain_cluster_1"]
    assert [c.article_ids for c in clusters] == [["a1", "a3"], ["a0", "a2"]]


def test_pooling_leaves_unembedded_singletons_alone():
    articles = [
        Article(id="a0", embedding=[1.0, 0.0]),
        Article(id="a1", embedding=[0.9, 0.1]),
        Article(id="lone", embedding=[0.0, 1.0]),
        Article(id="blank"),
    ]
    clusters = clusters_from_groups([[0, 1], [2], [3]], articles, algorithm="louvain")

    pooled = pool_small_clusters(clusters, {a.id: a for a in articles}, min_size=2)

    assert [c.article_ids for c in pooled] == [["a0", "a1"], ["blank"], ["lone"]]
    assert pooled[-1].label == MISC_CLUSTER_LABEL
    assert pool_small_clusters(clusters, {a.id: a for a in articles}, min_size=1) == clusters
