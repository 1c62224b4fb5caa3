"""
Topic clustering for a digest batch.

Modules:
  - graph.py: similarity graph built from VectorSearcher k-NN lookups
  - louvain.py: Louvain community detection (modularity optimization)
  - components.py: connected-component clusterer
  - kmeans.py: deterministic K-Means fallback
  - assembly.py: labels, centroids, miscellaneous pooling
  - engine.py: TopicClusterer (strategy dispatch)
"""

from digest_topics.clustering.graph import SimilarityGraph, build_graph
from digest_topics.clustering.louvain import detect_communities, louvain_partition, modularity
from digest_topics.clustering.components import component_partition, detect_components
from digest_topics.clustering.kmeans import cluster_by_centroid, default_k, find_optimal_k
from digest_topics.clustering.assembly import MISC_CLUSTER_LABEL, pool_small_clusters
from digest_topics.clustering.engine import TopicClusterer
