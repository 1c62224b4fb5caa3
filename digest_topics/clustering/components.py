"""
Connected-component clusterer over the similarity graph.

Every connected piece of the graph becomes one topic. Coarser than Louvain
(one edge above the threshold is enough to merge two groups) and has no
tuning beyond the graph itself. Components are numbered by their lowest
member index; isolated nodes come back as singletons.
"""

import logging
from typing import List

from ..errors import EmptyInputError
from ..schemas.clusters import TopicCluster
from .assembly import clusters_from_groups
from .graph import SimilarityGraph

logger = logging.getLogger(__name__)


def component_partition(graph: SimilarityGraph) -> List[int]:
    """Component ID per node, numbered in order of lowest member index."""
    n = graph.num_nodes
    if n == 0:
        raise EmptyInputError("similarity graph has no nodes")

    membership = [-1] * n
    num_components = 0
    for start in range(n):
        if membership[start] >= 0:
            continue
        membership[start] = num_components
        stack = [start]
        while stack:
            node = stack.pop()
            for nbr in graph.adjacency[node]:
                if membership[nbr] < 0:
                    membership[nbr] = num_components
                    stack.append(nbr)
        num_components += 1
    return membership


def detect_components(graph: SimilarityGraph) -> List[TopicCluster]:
    """Partition the graph into one topic cluster per connected component."""
    membership = component_partition(graph)

    groups: List[List[int]] = [[] for _ in range(max(membership) + 1)]
    for i, c in enumerate(membership):
        groups[c].append(i)

    clusters = clusters_from_groups(groups, graph.articles, algorithm="graph")
    logger.info(
        f"Connected components: {len(clusters)} clusters from {graph.num_nodes} articles "
        f"({sum(1 for g in groups if len(g) == 1)} singletons)"
    )
    return clusters
