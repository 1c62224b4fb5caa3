"""
Common enums used across the clustering and quality layers.
"""

from enum import Enum


class ClusteringStrategy(str, Enum):
    """Which clusterer produces the partition."""
    LOUVAIN = "louvain"     # similarity graph + modularity optimization
    GRAPH = "graph"         # similarity graph + connected components
    KMEANS = "kmeans"       # centroid fallback, no vector index needed
    AUTO = "auto"           # louvain if a searcher is configured, else kmeans


class DistanceMetric(str, Enum):
    """Distance used by the centroid clusterer."""
    COSINE = "cosine"
    EUCLIDEAN = "euclidean"


class CoherenceGrade(str, Enum):
    """Letter grade for a clustering run."""
    A = "A - EXCELLENT"
    B = "B - GOOD"
    C = "C - FAIR"
    D = "D - POOR"


class GateStatus(str, Enum):
    """Outcome of a single quality gate."""
    PASSED = "passed"
    WARNED = "warned"       # thresholds missed, gate is non-blocking
    FAILED = "failed"       # thresholds missed, gate is blocking
    SKIPPED = "skipped"     # gate disabled
