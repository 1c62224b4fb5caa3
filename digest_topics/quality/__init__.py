"""
Cluster quality: coherence metrics and the gates that act on them.

Modules:
  - coherence.py: ClusterCoherenceEvaluator, grading, text report
  - gates.py: QualityGate, ClusteringQualityGate, QualityGateRunner
"""

from digest_topics.quality.coherence import ClusterCoherenceEvaluator, format_report, grade_cluster_coherence
from digest_topics.quality.gates import (
    ClusteringQualityGate,
    GateContext,
    QualityGate,
    QualityGateRunner,
)
