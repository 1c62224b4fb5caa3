"""
Quality models: coherence metrics, thresholds, and gate outcomes.

CoherenceMetrics is computed once per run. It is JSON-serializable through
pydantic so an external repository can persist it; this package never does.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .base import CoherenceGrade, GateStatus


class GradeThresholds(BaseModel):
    """Requirements for one letter grade."""
    min_silhouette: float


class QualityThresholds(BaseModel):
    """Minimum acceptable clustering quality."""
    min_silhouette_score: float = 0.3
    min_intra_cluster_sim: float = 0.5
    min_inter_cluster_dist: float = 0.3

    grade_a: GradeThresholds = Field(default_factory=lambda: GradeThresholds(min_silhouette=0.5))
    grade_b: GradeThresholds = Field(default_factory=lambda: GradeThresholds(min_silhouette=0.4))
    grade_c: GradeThresholds = Field(default_factory=lambda: GradeThresholds(min_silhouette=0.3))

    @classmethod
    def from_settings(cls, settings) -> "QualityThresholds":
        return cls(
            min_silhouette_score=settings.min_silhouette_score,
            min_intra_cluster_sim=settings.min_intra_cluster_sim,
            min_inter_cluster_dist=settings.min_inter_cluster_dist,
        )


class CoherenceMetrics(BaseModel):
    """Quality metrics for one topic clustering."""
    num_clusters: int = 0
    num_articles: int = 0
    avg_cluster_size: float = 0.0

    # Silhouette (-1..1, higher is better)
    avg_silhouette: float = 0.0
    cluster_silhouettes: List[float] = Field(default_factory=list)

    # Cohesion (-1..1, higher is better)
    avg_intra_cluster_similarity: float = 0.0
    intra_cluster_similarities: List[float] = Field(default_factory=list)

    # Separation (0..2, higher is better)
    avg_inter_cluster_distance: float = 0.0

    grade: CoherenceGrade = CoherenceGrade.D
    issues: List[str] = Field(default_factory=list)
    passed: bool = False

    class Config:
        use_enum_values = True


class GateResult(BaseModel):
    """Outcome of one QualityGate.validate() call."""
    gate: str
    status: GateStatus
    blocking: bool = False
    message: str = ""
    metrics: Optional[CoherenceMetrics] = None

    class Config:
        use_enum_values = True


class GateRunSummary(BaseModel):
    """Tally of a QualityGateRunner pass."""
    results: List[GateResult] = Field(default_factory=list)
    passed: int = 0
    warnings: int = 0
    skipped: int = 0

    @property
    def all_passed(self) -> bool:
        return self.warnings == 0


class QualityGateConfig(BaseModel):
    """Configuration for the clustering quality gate."""
    enabled: bool = True
    block_on_failure: bool = False
    thresholds: QualityThresholds = Field(default_factory=QualityThresholds)

    @classmethod
    def from_settings(cls, settings) -> "QualityGateConfig":
        return cls(
            enabled=settings.clustering_gate_enabled,
            block_on_failure=settings.block_on_failure,
            thresholds=QualityThresholds.from_settings(settings),
        )
