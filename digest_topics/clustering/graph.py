"""
Similarity graph construction for a digest batch.

Pipeline: articles -> k-NN lookups (VectorSearcher) -> weighted undirected graph

Each article with a usable embedding asks the searcher for its nearest
neighbors above the similarity threshold. Hits are folded into one adjacency
structure indexed by the article's position in the batch, which is what the
Louvain detector consumes.

Lookups are I/O-bound (the production searcher is a vector database), so they
fan out through a semaphore. Results are merged in node order only after every
lookup has finished: completion order never changes the graph.
"""

import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from ..errors import EmptyInputError
from ..schemas.articles import Article, SearchResult, SimilarityEdge
from ..schemas.clusters import GraphBuildStats
from ..tools.vector_search import VectorSearcher, index_by_id

logger = logging.getLogger(__name__)


class SimilarityGraph:
    """
    Weighted undirected graph over one batch of articles.

    Node i is articles[i]. adjacency[i] maps neighbor index -> weight and is
    kept symmetric; there are no self-loops at this level.
    """

    def __init__(self, articles: Iterable[Article]):
        self.articles: List[Article] = list(articles)
        self.index: Dict[str, int] = {a.id: i for i, a in enumerate(self.articles)}
        self.adjacency: List[Dict[int, float]] = [{} for _ in self.articles]
        self.stats = GraphBuildStats(num_nodes=len(self.articles))

    @property
    def num_nodes(self) -> int:
        return len(self.articles)

    @property
    def num_edges(self) -> int:
        return sum(len(nbrs) for nbrs in self.adjacency) // 2

    def add_edge(self, i: int, j: int, weight: float) -> bool:
        """Add or strengthen edge i-j; repeats keep the larger weight. True when new."""
        if i == j:
            return False
        weight = min(1.0, max(0.0, float(weight)))
        current = self.adjacency[i].get(j)
        if current is None or weight > current:
            self.adjacency[i][j] = weight
            self.adjacency[j][i] = weight
        return current is None

    def weight(self, i: int, j: int) -> float:
        return self.adjacency[i].get(j, 0.0)

    def degree(self, i: int) -> float:
        return sum(self.adjacency[i].values())

    def total_weight(self) -> float:
        """Sum of edge weights, each undirected edge counted once (m)."""
        return sum(self.degree(i) for i in range(self.num_nodes)) / 2.0

    def edges(self) -> List[SimilarityEdge]:
        """All edges with source < target, in node order."""
        out = []
        for i, nbrs in enumerate(self.adjacency):
            for j in sorted(nbrs):
                if j > i:
                    out.append(SimilarityEdge(source=i, target=j, weight=nbrs[j]))
        return out

    def isolated_nodes(self) -> List[int]:
        return [i for i, nbrs in enumerate(self.adjacency) if not nbrs]


async def build_graph(
    articles: Iterable[Article],
    searcher: VectorSearcher,
    similarity_threshold: float = 0.5,
    max_neighbors_per_node: int = 10,
    tag_aware: bool = False,
    max_concurrency: int = 8,
) -> SimilarityGraph:
    """Build the similarity graph for a batch.

    Articles without an embedding are never queried and stay isolated. A lookup
    that raises is logged, counted in stats.degraded_lookups and leaves the node
    isolated (it can still gain edges from other nodes' hits). Only cancellation
    propagates out of the fan-out.

    Raises:
        EmptyInputError: the batch is empty.
        ValueError: two articles share an ID.
    """
    articles = list(articles)
    if not articles:
        raise EmptyInputError("no articles to build a similarity graph from")
    index_by_id(articles)

    graph = SimilarityGraph(articles)
    semaphore = asyncio.Semaphore(max(1, max_concurrency))

    async def _lookup(article: Article) -> Optional[List[SearchResult]]:
        async with semaphore:
            try:
                return await searcher.search_similar(
                    article.embedding,
                    limit=max_neighbors_per_node,
                    threshold=similarity_threshold,
                    exclude_ids=[article.id],
                    tag_ids=article.tag_ids if tag_aware else None,
                )
            except Exception as e:
                logger.warning(f"Neighbor lookup failed for article {article.id}: {e}")
                return None

    queried = [i for i, a in enumerate(articles) if a.has_embedding]
    results = await asyncio.gather(*[_lookup(articles[i]) for i in queried])

    degraded = 0
    dropped_out_of_batch = 0
    for i, hits in zip(queried, results):
        if hits is None:
            degraded += 1
            continue
        for hit in hits[:max_neighbors_per_node]:
            j = graph.index.get(hit.article_id)
            if j is None:
                dropped_out_of_batch += 1
                continue
            if j == i or not articles[j].has_embedding:
                continue
            if hit.similarity < similarity_threshold:
                continue
            if tag_aware and not articles[i].shares_tag_with(articles[j]):
                continue
            graph.add_edge(i, j, hit.similarity)

    graph.stats = GraphBuildStats(
        num_nodes=graph.num_nodes,
        num_edges=graph.num_edges,
        lookups=len(queried),
        degraded_lookups=degraded,
        missing_embeddings=len(articles) - len(queried),
        isolated_nodes=len(graph.isolated_nodes()),
    )

    if degraded:
        logger.warning(f"Similarity graph: {degraded}/{len(queried)} neighbor lookups failed")
    if dropped_out_of_batch:
        logger.debug(f"Similarity graph: ignored {dropped_out_of_batch} hits outside the batch")
    logger.info(
        f"Similarity graph: {graph.num_nodes} nodes, {graph.stats.num_edges} edges, "
        f"threshold={similarity_threshold}, k={max_neighbors_per_node}, "
        f"tag_aware={tag_aware}, isolated={graph.stats.isolated_nodes}"
    )
    return graph
