"""
Turning index groups into TopicCluster objects.

Shared by the Louvain detector and the K-Means fallback so both produce the
same shape of output: a stable cluster_id, a label taken from the members'
tags/themes, and the mean embedding of members that have one.
"""

import logging
from collections import Counter
from typing import Dict, List, Sequence

from ..schemas.articles import Article
from ..schemas.clusters import TopicCluster
from ..tools.vectors import mean_vector

logger = logging.getLogger(__name__)

MISC_CLUSTER_LABEL = "Miscellaneous Topics"


def label_for(members: Sequence[Article], fallback: str) -> str:
    """Most common tag or theme among members; ties broken alphabetically."""
    counts: Counter = Counter()
    for article in members:
        for tag in article.tag_ids:
            counts[tag] += 1
        if article.theme_id:
            counts[article.theme_id] += 1
    if not counts:
        return fallback
    return min(counts.items(), key=lambda kv: (-kv[1], kv[0]))[0]


def centroid_of(members: Sequence[Article]):
    """Mean embedding of members with a usable one, None if there are none."""
    vectors = [a.embedding for a in members if a.has_embedding]
    if not vectors:
        return None
    dims = Counter(len(v) for v in vectors)
    if len(dims) > 1:
        # Mixed dimensions: average the majority only
        dim = dims.most_common(1)[0][0]
        vectors = [v for v in vectors if len(v) == dim]
    return mean_vector(vectors)


def make_cluster(
    cluster_id: str,
    members: Sequence[Article],
    fallback_label: str,
    algorithm: str,
) -> TopicCluster:
    return TopicCluster(
        cluster_id=cluster_id,
        label=label_for(members, fallback_label),
        article_ids=[a.id for a in members],
        centroid=centroid_of(members),
        algorithm=algorithm,
    )


def clusters_from_groups(
    groups: Sequence[Sequence[int]],
    articles: Sequence[Article],
    algorithm: str,
) -> List[TopicCluster]:
    """One TopicCluster per non-empty group of article indices, in group order.

    Members are emitted in input order regardless of the order inside a group.
    """
    clusters = []
    for group in groups:
        if not group:
            continue
        n = len(clusters)
        members = [articles[i] for i in sorted(group)]
        clusters.append(make_cluster(f"{algorithm}_cluster_{n}", members, f"Cluster {n + 1}", algorithm))
    return clusters


def pool_small_clusters(
    clusters: Sequence[TopicCluster],
    articles_by_id: Dict[str, Article],
    min_size: int,
) -> List[TopicCluster]:
    """Merge clusters smaller than min_size into one "Miscellaneous Topics" cluster.

    Only clusters with at least one embedded member are pooled: embedding-less
    singletons stay on their own. The pooled cluster goes last; its members keep
    the order of the clusters they came from.
    """
    if min_size <= 1:
        return list(clusters)

    kept: List[TopicCluster] = []
    pooled: List[Article] = []
    for cluster in clusters:
        if cluster.size < min_size and cluster.centroid is not None:
            pooled.extend(articles_by_id[aid] for aid in cluster.article_ids)
        else:
            kept.append(cluster)

    if not pooled:
        return kept

    algorithm = clusters[0].algorithm if clusters else "louvain"
    misc = TopicCluster(
        cluster_id=f"{algorithm}_cluster_misc",
        label=MISC_CLUSTER_LABEL,
        article_ids=[a.id for a in pooled],
        centroid=centroid_of(pooled),
        algorithm=algorithm,
    )
    logger.info(
        f"Pooled {len(pooled)} articles from {len(clusters) - len(kept)} clusters "
        f"smaller than {min_size} into '{MISC_CLUSTER_LABEL}'"
    )
    return kept + [misc]
