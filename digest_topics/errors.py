"""Exceptions raised by the clustering and quality layers."""

from typing import Optional


class ClusteringError(Exception):
    """Clustering could not produce a valid partition."""


class EmptyInputError(ClusteringError):
    """No articles, or no article with a usable embedding."""


class QualityGateError(Exception):
    """A blocking quality gate failed; the pipeline must stop."""

    def __init__(self, gate_name: str, message: str, metrics: Optional[object] = None):
        super().__init__(f"{gate_name}: {message}")
        self.gate_name = gate_name
        self.metrics = metrics
