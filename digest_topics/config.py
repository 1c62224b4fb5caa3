"""
Configuration management for the digest topic-clustering subsystem.

Every tunable is a plain value read from the environment (or a .env file).
Callers that need a different configuration for one run build a Settings
instance directly instead of touching the cached one.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field

from .schemas.base import ClusteringStrategy, DistanceMetric


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Strategy ──
    # auto = Louvain when a vector searcher is available, K-Means otherwise
    clustering_strategy: ClusteringStrategy = Field(default=ClusteringStrategy.AUTO, alias="CLUSTERING_STRATEGY")

    # ── Similarity graph (Graph Builder) ──
    # Minimum cosine similarity for an edge. Louvain weighs edges, so a lower
    # threshold than connected-components clustering is fine.
    similarity_threshold: float = Field(default=0.5, ge=0.0, le=1.0, alias="SIMILARITY_THRESHOLD")
    # k for the k-NN neighbor lookup per article
    max_neighbors_per_node: int = Field(default=10, ge=1, alias="MAX_NEIGHBORS_PER_NODE")
    # Restrict edges to articles sharing at least one tag
    tag_aware: bool = Field(default=False, alias="TAG_AWARE")
    # Bounded fan-out for neighbor lookups against the vector index
    neighbor_lookup_concurrency: int = Field(default=8, ge=1, alias="NEIGHBOR_LOOKUP_CONCURRENCY")

    # ── Louvain community detection ──
    # 1.0 = standard modularity. >1.0 gives more, smaller clusters.
    resolution: float = Field(default=1.0, gt=0.0, alias="LOUVAIN_RESOLUTION")
    louvain_max_iterations: int = Field(default=100, ge=1, alias="LOUVAIN_MAX_ITERATIONS")
    louvain_max_levels: int = Field(default=20, ge=1, alias="LOUVAIN_MAX_LEVELS")

    # Clusters smaller than this are pooled into "Miscellaneous Topics".
    # 1 disables pooling (isolated articles stay singletons).
    min_cluster_size: int = Field(default=1, ge=1, alias="MIN_CLUSTER_SIZE")

    # ── K-Means fallback ──
    kmeans_max_iterations: int = Field(default=50, ge=1, alias="KMEANS_MAX_ITERATIONS")
    kmeans_metric: DistanceMetric = Field(default=DistanceMetric.COSINE, alias="KMEANS_METRIC")
    # When true, k is chosen by best silhouette in [kmeans_min_k, kmeans_max_k]
    kmeans_auto_k: bool = Field(default=False, alias="KMEANS_AUTO_K")
    kmeans_min_k: int = Field(default=2, ge=1, alias="KMEANS_MIN_K")
    kmeans_max_k: int = Field(default=5, ge=1, alias="KMEANS_MAX_K")

    # Whole clustering call, seconds. 0 disables the timeout.
    clustering_timeout: float = Field(default=60.0, ge=0.0, alias="CLUSTERING_TIMEOUT")

    # ── Quality gate thresholds ──
    # Silhouette: -1..1. 0.3 is the usual "weak but real structure" floor.
    min_silhouette_score: float = Field(default=0.3, alias="MIN_SILHOUETTE_SCORE")
    # Mean pairwise cosine similarity inside a cluster
    min_intra_cluster_sim: float = Field(default=0.5, alias="MIN_INTRA_CLUSTER_SIM")
    # Mean cosine distance between cluster centroids
    min_inter_cluster_dist: float = Field(default=0.3, alias="MIN_INTER_CLUSTER_DIST")
    clustering_gate_enabled: bool = Field(default=True, alias="CLUSTERING_GATE_ENABLED")
    # Non-blocking by default: a poor grouping is reported, the digest still ships
    block_on_failure: bool = Field(default=False, alias="BLOCK_ON_FAILURE")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
