"""
VectorSearcher capability and an in-memory implementation.

The production searcher is backed by a persistent vector index owned by the
surrounding system; this package only consumes it through the protocol below.

InMemoryVectorSearcher is a brute-force cosine index over one batch
(scikit-learn NearestNeighbors). It is what the CLI report and the tests use,
and what a caller without a vector database can hand to the graph builder.
"""

import logging
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, runtime_checkable

import numpy as np
from sklearn.neighbors import NearestNeighbors

from ..schemas.articles import Article, SearchResult
from .vectors import normalize_rows

logger = logging.getLogger(__name__)


@runtime_checkable
class VectorSearcher(Protocol):
    """Nearest-neighbor lookup over article embeddings."""

    async def search_similar(
        self,
        embedding: Sequence[float],
        limit: int,
        threshold: float,
        exclude_ids: Sequence[str],
        tag_ids: Optional[Sequence[str]] = None,
    ) -> List[SearchResult]:
        """Return up to `limit` hits with similarity >= threshold, best first.

        When tag_ids is given, results are restricted to articles carrying at
        least one of those tags (an empty list restricts to untagged articles).
        """
        ...


class InMemoryVectorSearcher:
    """
    Brute-force cosine index over a fixed set of articles.

    Articles without a usable embedding are not indexed. Queries over-fetch
    from the k-NN index so that exclusions and tag scoping still leave up to
    `limit` hits.
    """

    def __init__(self, articles: Iterable[Article]) -> None:
        indexed = [a for a in articles if a.has_embedding]
        dims = {len(a.embedding) for a in indexed}
        if len(dims) > 1:
            raise ValueError(f"mixed embedding dimensions in index: {sorted(dims)}")

        self._ids: List[str] = [a.id for a in indexed]
        self._tags: List[frozenset] = [frozenset(a.tag_ids) for a in indexed]
        self._dim = dims.pop() if dims else 0
        self._nn: Optional[NearestNeighbors] = None

        if indexed:
            matrix = normalize_rows(np.array([a.embedding for a in indexed], dtype=float))
            self._nn = NearestNeighbors(metric="cosine", algorithm="brute")
            self._nn.fit(matrix)

        logger.debug(f"In-memory vector index: {len(self._ids)} articles, dim={self._dim}")

    def __len__(self) -> int:
        return len(self._ids)

    async def search_similar(
        self,
        embedding: Sequence[float],
        limit: int,
        threshold: float,
        exclude_ids: Sequence[str],
        tag_ids: Optional[Sequence[str]] = None,
    ) -> List[SearchResult]:
        if self._nn is None or limit <= 0:
            return []
        if len(embedding) != self._dim:
            raise ValueError(f"query dimension {len(embedding)} != index dimension {self._dim}")

        excluded = set(exclude_ids or [])
        scope = None if tag_ids is None else frozenset(tag_ids)

        # Over-fetch: exclusions and tag scoping remove hits after the k-NN query
        n_fetch = min(len(self._ids), limit + len(excluded) + (len(self._ids) if scope is not None else 0))
        query = normalize_rows(np.asarray([embedding], dtype=float))
        distances, indices = self._nn.kneighbors(query, n_neighbors=n_fetch)

        hits: List[SearchResult] = []
        for dist, idx in zip(distances[0], indices[0]):
            idx = int(idx)
            article_id = self._ids[idx]
            if article_id in excluded:
                continue
            if scope is not None and not self._in_scope(idx, scope):
                continue
            sim = float(np.clip(1.0 - dist, -1.0, 1.0))
            if sim < threshold:
                # kneighbors returns ascending distance: nothing further can pass
                break
            hits.append(SearchResult(article_id=article_id, similarity=sim))
            if len(hits) >= limit:
                break
        return hits

    def _in_scope(self, idx: int, scope: frozenset) -> bool:
        tags = self._tags[idx]
        if not scope:
            return not tags
        return bool(tags & scope)


def index_by_id(articles: Iterable[Article]) -> Dict[str, Article]:
    """Map article ID → article, rejecting duplicate IDs."""
    by_id: Dict[str, Article] = {}
    for article in articles:
        if article.id in by_id:
            raise ValueError(f"duplicate article id: {article.id}")
        by_id[article.id] = article
    return by_id
