"""
Louvain community detection on the article similarity graph.

Two phases, repeated level by level:
  A. Local moving: visit nodes in index order and move each to the
     neighboring community with the largest modularity gain
         k_i,in - resolution * k_i * sigma_tot / 2m
     (staying put is one of the candidates). Repeat until a pass moves nothing.
  B. Aggregation: contract each community into a super-node; intra-community
     weight becomes a self-loop, inter-community weights are summed.

Levels stop when a pass moves nothing, when modularity stops improving, or at
max_levels. Everything is index lists and dicts, no object graph.

Determinism: candidate communities are scanned in ascending ID and a candidate
only wins on a strictly larger gain, so equal gains go to the lowest ID.
Identical input always gives the identical partition.

REF: Blondel et al. 2008, "Fast unfolding of communities in large networks".
"""

import logging
from typing import Dict, List, Sequence, Tuple

from ..errors import EmptyInputError
from ..schemas.clusters import TopicCluster
from .assembly import clusters_from_groups
from .graph import SimilarityGraph

logger = logging.getLogger(__name__)

# Gains closer than this are treated as equal
_EPS = 1e-12

Adjacency = List[Dict[int, float]]


def _degrees(adj: Adjacency) -> List[float]:
    # Self-loops count twice toward a node's degree
    return [
        sum(w for j, w in nbrs.items() if j != i) + 2.0 * nbrs.get(i, 0.0)
        for i, nbrs in enumerate(adj)
    ]


def _modularity(adj: Adjacency, membership: Sequence[int], resolution: float) -> float:
    degrees = _degrees(adj)
    m2 = sum(degrees)
    if m2 <= 0:
        return 0.0

    internal: Dict[int, float] = {}
    tot: Dict[int, float] = {}
    for i, nbrs in enumerate(adj):
        ci = membership[i]
        tot[ci] = tot.get(ci, 0.0) + degrees[i]
        for j, w in nbrs.items():
            if j >= i and membership[j] == ci:
                internal[ci] = internal.get(ci, 0.0) + w

    m = m2 / 2.0
    return sum(
        internal.get(c, 0.0) / m - resolution * (tot[c] / m2) ** 2
        for c in tot
    )


def _renumber(membership: Sequence[int]) -> Tuple[List[int], int]:
    """Relabel communities 0..C-1 in order of first appearance."""
    mapping: Dict[int, int] = {}
    out = []
    for c in membership:
        if c not in mapping:
            mapping[c] = len(mapping)
        out.append(mapping[c])
    return out, len(mapping)


def _local_moving(adj: Adjacency, resolution: float, max_iterations: int) -> Tuple[List[int], bool]:
    """Phase A. Returns (node -> community, whether any node moved)."""
    n = len(adj)
    node2com = list(range(n))
    degrees = _degrees(adj)
    m2 = sum(degrees)
    if m2 <= 0:
        return node2com, False

    tot = list(degrees)
    moved_any = False

    for iteration in range(max_iterations):
        moves = 0
        for i in range(n):
            ki = degrees[i]
            ci = node2com[i]

            links: Dict[int, float] = {}
            for j, w in adj[i].items():
                if j == i:
                    continue
                cj = node2com[j]
                links[cj] = links.get(cj, 0.0) + w

            tot[ci] -= ki
            best_c = ci
            best_gain = links.get(ci, 0.0) - resolution * ki * tot[ci] / m2
            for c in sorted(links.keys() | {ci}):
                gain = links.get(c, 0.0) - resolution * ki * tot[c] / m2
                if gain > best_gain + _EPS or (gain >= best_gain - _EPS and c < best_c):
                    best_c, best_gain = c, gain
            tot[best_c] += ki

            if best_c != ci:
                node2com[i] = best_c
                moves += 1

        logger.debug(f"Louvain local moving pass {iteration + 1}: {moves} moves")
        if moves == 0:
            break
        moved_any = True

    return node2com, moved_any


def _aggregate(adj: Adjacency, membership: Sequence[int], num_communities: int) -> Adjacency:
    """Phase B: one super-node per community."""
    out: Adjacency = [{} for _ in range(num_communities)]
    for i, nbrs in enumerate(adj):
        ci = membership[i]
        for j, w in nbrs.items():
            if j < i:
                continue
            cj = membership[j]
            out[ci][cj] = out[ci].get(cj, 0.0) + w
            if ci != cj:
                out[cj][ci] = out[cj].get(ci, 0.0) + w
    return out


def louvain_partition(
    graph: SimilarityGraph,
    resolution: float = 1.0,
    max_iterations: int = 100,
    max_levels: int = 20,
) -> Tuple[List[int], float]:
    """Community ID per node (numbered by lowest member index) and modularity Q."""
    n = graph.num_nodes
    if n == 0:
        raise EmptyInputError("similarity graph has no nodes")

    base_adj: Adjacency = [dict(nbrs) for nbrs in graph.adjacency]
    membership = list(range(n))
    best_q = _modularity(base_adj, membership, resolution)

    level_adj = base_adj
    for level in range(max_levels):
        level_membership, moved = _local_moving(level_adj, resolution, max_iterations)
        if not moved:
            break
        level_membership, num_communities = _renumber(level_membership)

        candidate = [level_membership[c] for c in membership]
        q = _modularity(base_adj, candidate, resolution)
        logger.debug(
            f"Louvain level {level + 1}: {len(level_adj)} -> {num_communities} communities, Q={q:.4f}"
        )
        if q <= best_q + _EPS:
            break
        membership, best_q = candidate, q
        if num_communities >= len(level_adj):
            break
        level_adj = _aggregate(level_adj, level_membership, num_communities)

    membership, _ = _renumber(membership)
    return membership, best_q


def modularity(
    graph: SimilarityGraph,
    communities: Sequence[TopicCluster],
    resolution: float = 1.0,
) -> float:
    """Modularity of a clustering over the graph.

    Articles not covered by any cluster are treated as singletons.
    """
    membership = list(range(graph.num_nodes, 2 * graph.num_nodes))
    for c, cluster in enumerate(communities):
        for aid in cluster.article_ids:
            i = graph.index.get(aid)
            if i is not None:
                membership[i] = c
    return _modularity(graph.adjacency, membership, resolution)


def detect_communities(
    graph: SimilarityGraph,
    resolution: float = 1.0,
    max_iterations: int = 100,
    max_levels: int = 20,
) -> List[TopicCluster]:
    """Partition the graph into topic clusters.

    Isolated nodes (no embedding, failed lookup, or simply no neighbor above
    the threshold) come back as singleton clusters. Clusters are ordered by
    their lowest member index; members keep input order.
    """
    membership, q = louvain_partition(graph, resolution, max_iterations, max_levels)

    groups: List[List[int]] = [[] for _ in range(max(membership) + 1)]
    for i, c in enumerate(membership):
        groups[c].append(i)

    clusters = clusters_from_groups(groups, graph.articles, algorithm="louvain")
    singletons = sum(1 for g in groups if len(g) == 1)
    logger.info(
        f"Louvain: {len(clusters)} communities from {graph.num_nodes} articles "
        f"({singletons} singletons), Q={q:.4f}, m={graph.total_weight():.2f}, resolution={resolution}"
    )
    return clusters
