import asyncio

import pytest

from digest_topics.clustering.graph import SimilarityGraph, build_graph
from digest_topics.errors import EmptyInputError
from digest_topics.schemas.articles import Article, SearchResult


def build_article(article_id, embedding=(1.0, 0.0), tags=None):
    return Article(id=article_id, embedding=list(embedding) if embedding else None, tag_ids=tags or [])


class StaticSearcher:
    """Returns canned hits keyed by the querying article's ID."""

    def __init__(self, hits=None, failing=(), delay=0.0):
        self.hits = hits or {}
        self.failing = set(failing)
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def search_similar(self, embedding, limit, threshold, exclude_ids, tag_ids=None):
        article_id = exclude_ids[0]
        self.calls.append((article_id, tag_ids))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if article_id in self.failing:
                raise ConnectionError("vector index unavailable")
            return [SearchResult(article_id=i, similarity=s) for i, s in self.hits.get(article_id, [])][:limit]
        finally:
            self.in_flight -= 1


@pytest.mark.asyncio
async def test_duplicate_hits_merge_with_max_weight():
    articles = [build_article("a"), build_article("b")]
    searcher = StaticSearcher({"a": [("b", 0.8)], "b": [("a", 0.9)]})

    graph = await build_graph(articles, searcher)

    assert graph.num_edges == 1
    assert graph.weight(0, 1) == pytest.approx(0.9)
    assert graph.weight(1, 0) == pytest.approx(0.9)
    edges = graph.edges()
    assert [(e.source, e.target) for e in edges] == [(0, 1)]


@pytest.mark.asyncio
async def test_failed_lookups_are_counted_and_isolated():
    articles = [build_article("a"), build_article("b"), build_article("c")]
    searcher = StaticSearcher({"a": [("b", 0.7)]}, failing={"b", "c"})

    graph = await build_graph(articles, searcher)

    assert graph.stats.lookups == 3
    assert graph.stats.degraded_lookups == 2
    assert graph.weight(0, 1) == pytest.approx(0.7)
    assert graph.isolated_nodes() == [2]
    assert graph.stats.isolated_nodes == 1


@pytest.mark.asyncio
async def test_unembedded_and_out_of_batch_hits_are_ignored():
    articles = [build_article("a"), build_article("b", embedding=None)]
    searcher = StaticSearcher({"a": [("b", 0.9), ("elsewhere", 0.95)]})

    graph = await build_graph(articles, searcher)

    assert [call[0] for call in searcher.calls] == ["a"]
    assert graph.stats.missing_embeddings == 1
    assert graph.num_edges == 0


@pytest.mark.asyncio
async def test_weights_clipped_and_threshold_enforced():
    articles = [build_article("a"), build_article("b"), build_article("c")]
    searcher = StaticSearcher({"a": [("b", 1.0000001), ("c", 0.2)]})

    graph = await build_graph(articles, searcher, similarity_threshold=0.5)

    assert graph.weight(0, 1) == 1.0
    assert graph.weight(0, 2) == 0.0


@pytest.mark.asyncio
async def test_tag_aware_scoping():
    articles = [
        build_article("a", tags=["ai"]),
        build_article("b", tags=["ai", "chips"]),
        build_article("c", tags=["energy"]),
        build_article("d"),
    ]
    hits = {"a": [("b", 0.9), ("c", 0.9), ("d", 0.9)]}
    searcher = StaticSearcher(hits)

    graph = await build_graph(articles, searcher, tag_aware=True)

    assert dict(searcher.calls)["a"] == ["ai"]
    assert dict(searcher.calls)["d"] == []
    assert graph.weight(0, 1) == pytest.approx(0.9)
    assert graph.weight(0, 2) == 0.0
    assert graph.weight(0, 3) == 0.0


@pytest.mark.asyncio
async def test_lookup_concurrency_is_bounded():
    articles = [build_article(f"a{i}") for i in range(10)]
    searcher = StaticSearcher(delay=0.01)

    await build_graph(articles, searcher, max_concurrency=3)

    assert len(searcher.calls) == 10
    assert searcher.max_in_flight <= 3


@pytest.mark.asyncio
async def test_graph_is_independent_of_completion_order():
    articles = [build_article("a"), build_article("b"), build_article("c")]
    hits = {"a": [("b", 0.6)], "b": [("c", 0.7)], "c": [("a", 0.8)]}

    first = await build_graph(articles, StaticSearcher(hits, delay=0.0))
    second = await build_graph(articles, StaticSearcher(hits, delay=0.01), max_concurrency=1)

    assert first.edges() == second.edges()
    assert first.adjacency == second.adjacency


@pytest.mark.asyncio
async def test_empty_input_raises():
    with pytest.raises(EmptyInputError):
        await build_graph([], StaticSearcher())


@pytest.mark.asyncio
async def test_duplicate_ids_raise():
    with pytest.raises(ValueError):
        await build_graph([build_article("a"), build_article("a")], StaticSearcher())


def test_similarity_graph_degree_and_total_weight():
    graph = SimilarityGraph([build_article("a"), build_article("b"), build_article("c")])
    assert graph.add_edge(0, 1, 0.5)
    assert not graph.add_edge(1, 0, 0.4)
    assert not graph.add_edge(2, 2, 1.0)
    graph.add_edge(1, 2, 0.25)

    assert graph.weight(0, 1) == 0.5
    assert graph.degree(1) == pytest.approx(0.75)
    assert graph.total_weight() == pytest.approx(0.75)
