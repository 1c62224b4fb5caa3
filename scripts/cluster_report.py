"""
Cluster a file of embedded articles and print the coherence report.

Input is JSON (a list of articles, or {"articles": [...]}) or JSONL (one
article per line). Each article needs "id" and usually "embedding"; "tag_ids",
"theme_id" and "title" are optional.

    python scripts/cluster_report.py articles.jsonl --strategy louvain --threshold 0.6

Exit code 1 on unreadable or invalid input, empty input, or a blocking
quality-gate failure.
"""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import List

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from digest_topics.config import Settings
from digest_topics.errors import EmptyInputError, QualityGateError
from digest_topics.logging_setup import configure_logging
from digest_topics.pipeline import run_clustering_stage
from digest_topics.quality.coherence import format_report
from digest_topics.schemas.articles import Article
from digest_topics.schemas.quality import QualityThresholds
from digest_topics.tools.vector_search import InMemoryVectorSearcher

logger = logging.getLogger(__name__)


def load_articles(path: Path) -> List[Article]:
    text = path.read_text(encoding="utf-8")
    if path.suffix == ".jsonl":
        records = [json.loads(line) for line in text.splitlines() if line.strip()]
    else:
        data = json.loads(text)
        records = data["articles"] if isinstance(data, dict) else data
    return [Article(**r) for r in records]


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Cluster embedded articles and report coherence.")
    parser.add_argument("input", type=Path, help="JSON or JSONL file of articles")
    parser.add_argument("--strategy", choices=["auto", "louvain", "graph", "kmeans"], default=None)
    parser.add_argument("--threshold", type=float, default=None, help="similarity threshold for graph edges")
    parser.add_argument("--neighbors", type=int, default=None, help="k for the neighbor lookup")
    parser.add_argument("--resolution", type=float, default=None, help="Louvain resolution")
    parser.add_argument("--tag-aware", action="store_true", help="only link articles sharing a tag")
    parser.add_argument("--min-cluster-size", type=int, default=None)
    parser.add_argument("--block", action="store_true", help="treat a failed quality gate as fatal")
    parser.add_argument("--log-level", default=None)
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    overrides = {
        "clustering_strategy": args.strategy,
        "similarity_threshold": args.threshold,
        "max_neighbors_per_node": args.neighbors,
        "resolution": args.resolution,
        "min_cluster_size": args.min_cluster_size,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if args.tag_aware:
        overrides["tag_aware"] = True
    if args.block:
        overrides["block_on_failure"] = True
    if args.log_level:
        overrides["log_level"] = args.log_level
    return Settings(**overrides)


async def main(argv=None) -> int:
    args = parse_args(argv)
    settings = build_settings(args)
    configure_logging(settings.log_level)

    try:
        articles = load_articles(args.input)
        searcher = InMemoryVectorSearcher(articles)
        stage = await run_clustering_stage(articles, settings=settings, searcher=searcher)
    except EmptyInputError as e:
        print(f"Nothing to cluster: {e}", file=sys.stderr)
        return 1
    except QualityGateError as e:
        print(f"Quality gate failed: {e}", file=sys.stderr)
        if e.metrics is not None:
            print(e.metrics.model_dump_json(indent=2), file=sys.stderr)
        return 1
    except TimeoutError as e:
        print(f"Clustering timed out: {e}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 1

    result = stage.result
    titles = {a.id: a.title or a.id for a in articles}

    print()
    print("=" * 60)
    print(f"{result.num_clusters} clusters via {result.strategy.value}"
          + (f" (Q={result.modularity:.4f})" if result.modularity is not None else ""))
    print("=" * 60)
    for cluster in result.clusters:
        print(f"\n[{cluster.cluster_id}] {cluster.label} ({cluster.size} articles)")
        for aid in cluster.article_ids:
            print(f"  - {titles[aid]}")

    if stage.metrics is not None:
        print()
        print(format_report(stage.metrics, result.clusters, QualityThresholds.from_settings(settings)))
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
