#!/usr/bin/env python3
"""
CLI tool for news ingestion.

Usage:
    # Ingest top headlines for a category
    python -m scripts.ingest start --category technology --max 3

    # Search and ingest
    python -m scripts.ingest search "climate summit" --max 2

    # Show stored article count and AI quota
    python -m scripts.ingest stats

    # Articles similar to a stored one
    python -m scripts.ingest similar <article-id> --limit 5
"""

import argparse
import asyncio
import json
import sys

import structlog

from newswire.config import get_settings
from newswire.core.logging_setup import configure_logging
from newswire.models.database import Database
from newswire.models.domain import BatchResult
from newswire.repositories.articles import ArticleRepository
from newswire.services.enrichment import Enricher
from newswire.services.ingestion import IngestionPipeline
from newswire.sources.gnews import GNewsSource

logger = structlog.get_logger(__name__)


async def create_pipeline(database: Database) -> tuple[IngestionPipeline, ArticleRepository]:
    """Wire the pipeline from environment config."""
    settings = get_settings()
    await database.create_tables()
    repository = ArticleRepository(database)
    pipeline = IngestionPipeline(
        news=GNewsSource(settings),
        store=repository,
        enricher=Enricher.from_settings(settings),
        settings=settings.ingestion,
    )
    return pipeline, repository


def print_result(result: BatchResult, as_json: bool) -> int:
    if as_json:
        print(json.dumps(result.model_dump(), indent=2))
    else:
        print("\n" + "=" * 40)
        print("INGESTION COMPLETE")
        print("=" * 40)
        print(f"  Success: {result.success}")
        print(f"  Failed:  {result.failed}")
        print(f"  Skipped: {result.skipped}")
        print(f"  Total:   {result.total}")
        for error in result.errors:
            print(f"  ✗ {error}")

    return 1 if result.stopped_early else 0


async def cmd_start(args, database: Database) -> int:
    pipeline, _ = await create_pipeline(database)
    result = await pipeline.ingest_category(args.category, args.max)
    return print_result(result, args.json)


async def cmd_search(args, database: Database) -> int:
    pipeline, _ = await create_pipeline(database)
    result = await pipeline.search_and_ingest(args.query, args.max)
    return print_result(result, args.json)


async def cmd_stats(args, database: Database) -> int:
    pipeline, _ = await create_pipeline(database)
    stats = await pipeline.stats()

    print("\n" + "=" * 40)
    print("NEWSWIRE STATS")
    print("=" * 40)
    print(f"  Stored articles: {stats.total_articles}")
    quota = stats.api_quota
    print(f"  AI calls left this minute: {quota.minute_requests_remaining}")
    print(
        f"  AI calls left today: {quota.daily_requests_remaining} "
        f"(resets in {quota.daily_reset_in_hours}h)"
    )
    return 0


async def cmd_similar(args, database: Database) -> int:
    _, repository = await create_pipeline(database)
    article = await repository.get_by_id(args.article_id)
    if article is None:
        print(f"Article not found: {args.article_id}")
        return 1
    if not article.embedding:
        print(f"Article has no embedding: {args.article_id}")
        return 1

    similar = await repository.find_similar(article.embedding, args.limit + 1)
    print(f"Similar to: {article.title}")
    for match in [a for a in similar if a.id != article.id][: args.limit]:
        print(f"  {match.similarity:.3f}  {match.title}")
        print(f"         {match.url}")
    return 0


COMMANDS = {
    "start": cmd_start,
    "search": cmd_search,
    "stats": cmd_stats,
    "similar": cmd_similar,
}


async def run_command(args) -> int:
    database = Database(get_settings().database_url)
    try:
        return await COMMANDS[args.command](args, database)
    finally:
        await database.dispose()


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Newswire - News Ingestion CLI"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Start command
    start_parser = subparsers.add_parser("start", help="Ingest top headlines for a category")
    start_parser.add_argument(
        "--category", "-c",
        default=None,
        help="GNews category (default: general)"
    )
    start_parser.add_argument(
        "--max", "-m",
        type=int,
        default=None,
        help="Max articles to process (capped by INGESTION_MAX_ARTICLES_CEILING)"
    )
    start_parser.add_argument("--json", action="store_true", help="Print the result as JSON")

    # Search command
    search_parser = subparsers.add_parser("search", help="Search and ingest")
    search_parser.add_argument("query", help="Free-text search query")
    search_parser.add_argument("--max", "-m", type=int, default=None)
    search_parser.add_argument("--json", action="store_true", help="Print the result as JSON")

    # Stats command
    subparsers.add_parser("stats", help="Show stored article count and AI quota")

    # Similar command
    similar_parser = subparsers.add_parser("similar", help="Find similar stored articles")
    similar_parser.add_argument("article_id", help="Stored article ID")
    similar_parser.add_argument("--limit", "-l", type=int, default=10)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    configure_logging(get_settings())
    return asyncio.run(run_command(args))


if __name__ == "__main__":
    sys.exit(main())
