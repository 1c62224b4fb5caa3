"""
Quality gates between clustering and narrative generation.

A gate inspects one stage's output and either passes, warns, or stops the
pipeline. Blocking gates raise QualityGateError; non-blocking gates log a
warning and return a WARNED result that the runner tallies.

    runner = QualityGateRunner()
    runner.add_gate(ClusteringQualityGate(config, clusters, embeddings))
    summary = await runner.run_gates(GateContext(run_id="digest-42"))
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Mapping, Optional, Sequence

from ..errors import QualityGateError
from ..schemas.base import GateStatus
from ..schemas.clusters import TopicCluster
from ..schemas.quality import CoherenceMetrics, GateResult, GateRunSummary, QualityGateConfig
from .coherence import ClusterCoherenceEvaluator, format_report

logger = logging.getLogger(__name__)


@dataclass
class GateContext:
    """Per-run context handed to every gate."""
    run_id: str = ""
    # time.monotonic() value after which gates must not start
    deadline: Optional[float] = None

    @classmethod
    def with_timeout(cls, seconds: float, run_id: str = "") -> "GateContext":
        return cls(run_id=run_id, deadline=time.monotonic() + seconds)

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())


class QualityGate(ABC):
    """A validation checkpoint in the digest pipeline."""

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def is_blocking(self) -> bool:
        ...

    @abstractmethod
    async def validate(self, ctx: GateContext) -> GateResult:
        """Validate; raise QualityGateError on a blocking failure."""


class ClusteringQualityGate(QualityGate):
    """Validates topic clustering coherence before narratives are written."""

    def __init__(
        self,
        config: QualityGateConfig,
        clusters: Sequence[TopicCluster],
        embeddings: Mapping[str, Sequence[float]],
    ):
        self.config = config
        self.clusters = list(clusters)
        self.embeddings = embeddings
        self.evaluator = ClusterCoherenceEvaluator(config.thresholds)
        self.last_metrics: Optional[CoherenceMetrics] = None

    @property
    def name(self) -> str:
        return "Clustering Quality"

    def is_blocking(self) -> bool:
        return self.config.block_on_failure

    async def validate(self, ctx: GateContext) -> GateResult:
        if not self.config.enabled:
            logger.info(f"{self.name} gate disabled, skipping")
            return GateResult(gate=self.name, status=GateStatus.SKIPPED, blocking=self.is_blocking())

        logger.info(f"Validating clustering quality: {len(self.clusters)} clusters")
        metrics = await asyncio.to_thread(self.evaluator.evaluate, self.clusters, self.embeddings)
        self.last_metrics = metrics

        for line in format_report(metrics, self.clusters, self.config.thresholds).splitlines():
            logger.info(line)

        if metrics.passed:
            logger.info(f"{self.name}: passed (grade {metrics.grade})")
            return GateResult(
                gate=self.name, status=GateStatus.PASSED, blocking=self.is_blocking(),
                message=f"grade {metrics.grade}", metrics=metrics,
            )

        message = self._failure_message(metrics)
        if self.is_blocking():
            logger.error(f"GATE FAILED (blocking) {self.name}: {message}")
            raise QualityGateError(self.name, message, metrics)

        logger.warning(f"GATE WARNING (non-blocking) {self.name}: {message}")
        return GateResult(
            gate=self.name, status=GateStatus.WARNED, blocking=False,
            message=message, metrics=metrics,
        )

    def _failure_message(self, metrics: CoherenceMetrics) -> str:
        t = self.config.thresholds
        reasons: List[str] = []
        if metrics.avg_silhouette < t.min_silhouette_score:
            reasons.append(f"silhouette {metrics.avg_silhouette:.3f} < {t.min_silhouette_score:.2f}")
        if metrics.avg_intra_cluster_similarity < t.min_intra_cluster_sim:
            reasons.append(
                f"cohesion {metrics.avg_intra_cluster_similarity:.3f} < {t.min_intra_cluster_sim:.2f}"
            )
        if metrics.issues:
            reasons.append(f"{len(metrics.issues)} issues")
        return f"clustering quality below threshold ({', '.join(reasons)}), grade {metrics.grade}"


class QualityGateRunner:
    """Runs gates in order; the first blocking failure stops the run."""

    def __init__(self, gates: Optional[Sequence[QualityGate]] = None):
        self.gates: List[QualityGate] = list(gates or [])

    def add_gate(self, gate: QualityGate) -> "QualityGateRunner":
        self.gates.append(gate)
        return self

    async def run_gates(self, ctx: Optional[GateContext] = None) -> GateRunSummary:
        ctx = ctx or GateContext()
        summary = GateRunSummary()
        if not self.gates:
            return summary

        logger.info(f"Running {len(self.gates)} quality gates{f' for run {ctx.run_id}' if ctx.run_id else ''}")
        for gate in self.gates:
            try:
                result = await self._run_one(gate, ctx)
            except QualityGateError as e:
                if gate.is_blocking():
                    logger.error(f"Pipeline stopped at gate: {gate.name}")
                    raise
                logger.warning(f"Gate {gate.name} raised but is non-blocking: {e}")
                result = GateResult(
                    gate=gate.name, status=GateStatus.WARNED, blocking=False,
                    message=str(e), metrics=e.metrics if isinstance(e.metrics, CoherenceMetrics) else None,
                )

            summary.results.append(result)
            if result.status == GateStatus.PASSED:
                summary.passed += 1
            elif result.status == GateStatus.SKIPPED:
                summary.skipped += 1
            else:
                summary.warnings += 1

        if summary.warnings:
            logger.warning(
                f"Quality gates: {summary.passed} passed, {summary.warnings} warnings, "
                f"{summary.skipped} skipped"
            )
        else:
            logger.info(f"All quality gates passed ({summary.skipped} skipped)")
        return summary

    @staticmethod
    async def _run_one(gate: QualityGate, ctx: GateContext) -> GateResult:
        remaining = ctx.remaining()
        if remaining is None:
            return await gate.validate(ctx)
        if remaining <= 0:
            logger.error(f"[TIMEOUT] Gate deadline passed before {gate.name}")
            raise TimeoutError(f"gate deadline passed before {gate.name}")
        try:
            return await asyncio.wait_for(gate.validate(ctx), timeout=remaining)
        except asyncio.TimeoutError:
            logger.error(f"[TIMEOUT] {gate.name} exceeded the gate deadline")
            raise TimeoutError(f"{gate.name} exceeded the gate deadline")
