"""
Clustering stage of the digest pipeline: cluster, then gate.

The surrounding pipeline calls run_clustering_stage() once per batch and
either gets clusters to write narratives for, or a QualityGateError when a
blocking gate rejects the grouping.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from .clustering.engine import TopicClusterer
from .config import Settings, get_settings
from .quality.gates import ClusteringQualityGate, GateContext, QualityGateRunner
from .schemas.articles import Article
from .schemas.clusters import ClusteringResult
from .schemas.quality import CoherenceMetrics, GateRunSummary, QualityGateConfig
from .tools.vector_search import VectorSearcher

logger = logging.getLogger(__name__)


@dataclass
class ClusteringStageOutput:
    result: ClusteringResult
    gates: GateRunSummary
    metrics: Optional[CoherenceMetrics] = None


async def run_clustering_stage(
    articles: Iterable[Article],
    settings: Optional[Settings] = None,
    searcher: Optional[VectorSearcher] = None,
    ctx: Optional[GateContext] = None,
) -> ClusteringStageOutput:
    """Cluster a batch and run the clustering quality gate over the result.

    Raises whatever TopicClusterer.cluster() raises, plus QualityGateError
    when the gate is blocking and the clustering fails it.
    """
    settings = settings or get_settings()
    articles = list(articles)

    result = await TopicClusterer(settings, searcher).cluster(articles)

    embeddings = {a.id: a.embedding for a in articles if a.embedding}
    gate = ClusteringQualityGate(QualityGateConfig.from_settings(settings), result.clusters, embeddings)
    summary = await QualityGateRunner([gate]).run_gates(ctx)
    logger.info(
        f"Clustering stage: {result.num_clusters} clusters, "
        f"gates {summary.passed} passed / {summary.warnings} warnings / {summary.skipped} skipped"
    )

    return ClusteringStageOutput(result=result, gates=summary, metrics=gate.last_metrics)
