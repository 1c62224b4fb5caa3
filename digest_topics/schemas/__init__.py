"""
Schemas package: all data models for the topic-clustering subsystem.

Models are organized by domain in submodules:
  - base.py: Common enums (strategy, distance metric, grade, gate status)
  - articles.py: Article, SearchResult, SimilarityEdge
  - clusters.py: TopicCluster, GraphBuildStats, ClusteringResult
  - quality.py: CoherenceMetrics, QualityThresholds, QualityGateConfig, gate outcomes
"""

# base.py: enums
from digest_topics.schemas.base import (
    ClusteringStrategy, DistanceMetric, CoherenceGrade, GateStatus,
)

# articles.py: input models
from digest_topics.schemas.articles import Article, SearchResult, SimilarityEdge

# clusters.py: partition models
from digest_topics.schemas.clusters import (
    TopicCluster, GraphBuildStats, ClusteringResult, check_partition,
)

# quality.py: metrics and gate outcomes
from digest_topics.schemas.quality import (
    GradeThresholds, QualityThresholds, QualityGateConfig, CoherenceMetrics,
    GateResult, GateRunSummary,
)

__all__ = [
    # base
    "ClusteringStrategy", "DistanceMetric", "CoherenceGrade", "GateStatus",
    # articles
    "Article", "SearchResult", "SimilarityEdge",
    # clusters
    "TopicCluster", "GraphBuildStats", "ClusteringResult", "check_partition",
    # quality
    "GradeThresholds", "QualityThresholds", "QualityGateConfig", "CoherenceMetrics",
    "GateResult", "GateRunSummary",
]
