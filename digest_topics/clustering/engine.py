"""
TopicClusterer: strategy dispatch for one clustering pass.

  louvain: similarity graph (VectorSearcher k-NN) -> Louvain communities
  graph:   similarity graph -> connected components
  kmeans:  centroid clustering on the raw embeddings, no index needed
  auto:    louvain when a searcher is configured, else kmeans; also falls
           back to kmeans when every neighbor lookup failed

The whole pass runs under clustering_timeout. On timeout or cancellation
nothing partial is returned. The final partition is checked so that every
input article lands in exactly one cluster.
"""

import asyncio
import logging
import time
from typing import Iterable, List, Optional

from ..config import Settings, get_settings
from ..errors import ClusteringError, EmptyInputError
from ..schemas.articles import Article
from ..schemas.base import ClusteringStrategy
from ..schemas.clusters import ClusteringResult, check_partition
from ..tools.vector_search import VectorSearcher, index_by_id
from .assembly import pool_small_clusters
from .components import detect_components
from .graph import build_graph
from .kmeans import cluster_by_centroid, default_k, find_optimal_k
from .louvain import detect_communities, modularity

logger = logging.getLogger(__name__)


class TopicClusterer:
    """Groups a digest batch into topic clusters."""

    def __init__(self, settings: Optional[Settings] = None, searcher: Optional[VectorSearcher] = None):
        self.settings = settings or get_settings()
        self.searcher = searcher

    def resolve_strategy(self) -> ClusteringStrategy:
        strategy = ClusteringStrategy(self.settings.clustering_strategy)
        if strategy == ClusteringStrategy.AUTO:
            return ClusteringStrategy.LOUVAIN if self.searcher is not None else ClusteringStrategy.KMEANS
        if strategy in (ClusteringStrategy.LOUVAIN, ClusteringStrategy.GRAPH) and self.searcher is None:
            raise ValueError(f"{strategy.value} clustering requires a vector searcher")
        return strategy

    async def cluster(self, articles: Iterable[Article]) -> ClusteringResult:
        """Cluster one batch.

        Raises:
            EmptyInputError: no articles, or none with a usable embedding.
            ValueError: duplicate article IDs, or a graph strategy without a searcher.
            TimeoutError: the pass exceeded clustering_timeout.
            ClusteringError: the partition is not exact.
        """
        timeout = self.settings.clustering_timeout
        if not timeout:
            return await self._cluster(list(articles))
        try:
            return await asyncio.wait_for(self._cluster(list(articles)), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"[TIMEOUT] Clustering exceeded {timeout:.0f}s, discarding partial results")
            raise TimeoutError(f"Clustering timeout after {timeout}s")

    async def _cluster(self, articles: List[Article]) -> ClusteringResult:
        t0 = time.time()
        if not articles:
            raise EmptyInputError("no articles to cluster")
        by_id = index_by_id(articles)

        embedded = sum(1 for a in articles if a.has_embedding)
        if embedded == 0:
            raise EmptyInputError(f"none of {len(articles)} articles has a usable embedding")
        if embedded < len(articles):
            logger.warning(f"{len(articles) - embedded}/{len(articles)} articles have no embedding, emitted as singletons")

        strategy = self.resolve_strategy()
        logger.info(f"Clustering {len(articles)} articles (strategy={strategy.value})")

        result = None
        if strategy in (ClusteringStrategy.LOUVAIN, ClusteringStrategy.GRAPH):
            result = await self._cluster_graph(articles, strategy)
        if result is None:
            result = await self._cluster_kmeans(articles)

        if self.settings.min_cluster_size > 1:
            result.clusters = pool_small_clusters(result.clusters, by_id, self.settings.min_cluster_size)

        problems = check_partition(result.clusters, [a.id for a in articles])
        if problems:
            logger.error(f"Clustering produced an invalid partition: {problems}")
            raise ClusteringError(f"invalid partition: {'; '.join(problems)}")

        logger.info(
            f"Clustering complete: {result.num_clusters} clusters via {result.strategy.value} "
            f"in {time.time() - t0:.2f}s"
        )
        return result

    async def _cluster_graph(self, articles: List[Article], strategy: ClusteringStrategy) -> Optional[ClusteringResult]:
        s = self.settings
        graph = await build_graph(
            articles,
            self.searcher,
            similarity_threshold=s.similarity_threshold,
            max_neighbors_per_node=s.max_neighbors_per_node,
            tag_aware=s.tag_aware,
            max_concurrency=s.neighbor_lookup_concurrency,
        )

        stats = graph.stats
        if (
            stats.lookups > 0
            and stats.degraded_lookups == stats.lookups
            and ClusteringStrategy(s.clustering_strategy) == ClusteringStrategy.AUTO
        ):
            logger.warning(f"All {stats.lookups} neighbor lookups failed, falling back to k-means")
            return None

        if strategy == ClusteringStrategy.GRAPH:
            clusters = await asyncio.to_thread(detect_components, graph)
        else:
            clusters = await asyncio.to_thread(
                detect_communities, graph, s.resolution, s.louvain_max_iterations, s.louvain_max_levels,
            )
        return ClusteringResult(
            clusters=clusters,
            strategy=strategy,
            graph_stats=stats,
            modularity=modularity(graph, clusters, s.resolution),
        )

    async def _cluster_kmeans(self, articles: List[Article]) -> ClusteringResult:
        s = self.settings
        if s.kmeans_auto_k:
            k = await asyncio.to_thread(
                find_optimal_k, articles, s.kmeans_min_k, s.kmeans_max_k, s.kmeans_metric, s.kmeans_max_iterations,
            )
        else:
            k = default_k(sum(1 for a in articles if a.has_embedding), s.kmeans_min_k, s.kmeans_max_k)

        clusters = await asyncio.to_thread(
            cluster_by_centroid, articles, k, s.kmeans_metric, s.kmeans_max_iterations,
        )
        return ClusteringResult(clusters=clusters, strategy=ClusteringStrategy.KMEANS)
