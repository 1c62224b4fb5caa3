"""
Cluster data models: the partition handed back to the pipeline.

A clustering run produces an ordered list of TopicCluster objects that
partitions the input batch exactly (every article ID appears once).
"""

from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator

from .base import ClusteringStrategy


class TopicCluster(BaseModel):
    """Groups related articles before narrative generation."""
    cluster_id: str
    label: str
    article_ids: List[str] = Field(default_factory=list)
    # Mean embedding of members that have one; None when no member does
    centroid: Optional[List[float]] = None
    algorithm: str = "louvain"

    @field_validator('article_ids', mode='after')
    @classmethod
    def _unique_ids(cls, v: List[str]) -> List[str]:
        if len(set(v)) != len(v):
            raise ValueError("cluster article_ids must be unique")
        return v

    @property
    def size(self) -> int:
        return len(self.article_ids)


class GraphBuildStats(BaseModel):
    """Diagnostics from one similarity-graph build."""
    num_nodes: int = 0
    num_edges: int = 0
    lookups: int = 0
    degraded_lookups: int = 0       # searcher raised; node left isolated
    missing_embeddings: int = 0     # never queried; node left isolated
    isolated_nodes: int = 0


class ClusteringResult(BaseModel):
    """Output of TopicClusterer.cluster()."""
    clusters: List[TopicCluster] = Field(default_factory=list)
    strategy: ClusteringStrategy
    graph_stats: Optional[GraphBuildStats] = None
    modularity: Optional[float] = None

    @property
    def num_clusters(self) -> int:
        return len(self.clusters)


def check_partition(clusters: Iterable[TopicCluster], article_ids: Iterable[str]) -> List[str]:
    """Return problems with a partition; an empty list means it is exact."""
    expected = list(article_ids)
    expected_set = set(expected)
    seen: Dict[str, str] = {}
    problems: List[str] = []

    for cluster in clusters:
        for aid in cluster.article_ids:
            if aid in seen:
                problems.append(f"article {aid} in both {seen[aid]} and {cluster.cluster_id}")
            else:
                seen[aid] = cluster.cluster_id
            if aid not in expected_set:
                problems.append(f"unknown article {aid} in {cluster.cluster_id}")

    missing = [aid for aid in expected if aid not in seen]
    if missing:
        problems.append(f"{len(missing)} articles missing from clusters: {missing[:5]}")
    return problems
