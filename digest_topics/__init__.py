"""
digest-topics: topic clustering and coherence gating for article digests.

Pipeline stage:
  articles + embeddings -> similarity graph -> Louvain (or K-Means)
  -> topic clusters -> coherence metrics -> quality gate

Subpackages:
  - schemas/: pydantic data models
  - tools/: vector numerics and the VectorSearcher capability
  - clustering/: graph builder, Louvain, K-Means, TopicClusterer
  - quality/: coherence evaluator and quality gates
"""

from digest_topics.config import Settings, get_settings
from digest_topics.errors import ClusteringError, EmptyInputError, QualityGateError
from digest_topics.clustering import TopicClusterer
from digest_topics.quality import ClusterCoherenceEvaluator, ClusteringQualityGate, QualityGateRunner
from digest_topics.pipeline import run_clustering_stage

__version__ = "0.1.0"
