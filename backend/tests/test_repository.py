"""
Tests for the SQLAlchemy article repository.

Each test gets its own SQLite file and a single event loop.
"""

import asyncio
from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from newswire.models.database import Database
from newswire.models.domain import EnrichedArticle
from newswire.repositories.articles import ArticleRepository


def make_enriched(n: int, embedding=None, category="general") -> EnrichedArticle:
    return EnrichedArticle(
        title=f"Article {n}",
        summary=f"Summary {n}.",
        url=f"https://news.example.com/{n}",
        published_at=datetime(2024, 3, n, 9, 0),
        embedding=embedding if embedding is not None else [1.0, 0.0, 0.0],
        source="Example Wire",
        category=category,
    )


@pytest.fixture
def run_with_repo(tmp_path):
    """Run ``scenario(repo)`` against a fresh database."""

    def runner(scenario):
        async def main():
            database = Database(f"sqlite+aiosqlite:///{tmp_path / 'articles.db'}")
            await database.create_tables()
            try:
                return await scenario(ArticleRepository(database))
            finally:
                await database.dispose()

        return asyncio.run(main())

    return runner


class TestPersistence:
    """Create, lookup and count."""

    def test_create_and_exists(self, run_with_repo):
        async def scenario(repo):
            stored = await repo.create(make_enriched(1))
            return (
                stored,
                await repo.exists_by_url("https://news.example.com/1"),
                await repo.exists_by_url("https://news.example.com/2"),
                await repo.count(),
            )

        stored, exists, missing, count = run_with_repo(scenario)

        assert stored.id
        assert stored.summary == "Summary 1."
        assert stored.category == "general"
        assert stored.embedding is None
        assert exists is True
        assert missing is False
        assert count == 1

    def test_get_by_id_includes_embedding(self, run_with_repo):
        async def scenario(repo):
            stored = await repo.create(make_enriched(1, embedding=[0.25, 0.5, 0.75]))
            return await repo.get_by_id(stored.id), await repo.get_by_id("missing")

        found, missing = run_with_repo(scenario)

        assert found.title == "Article 1"
        assert found.embedding == [0.25, 0.5, 0.75]
        assert found.published_at == datetime(2024, 3, 1, 9, 0)
        assert missing is None

    def test_duplicate_url_is_rejected(self, run_with_repo):
        async def scenario(repo):
            await repo.create(make_enriched(1))
            with pytest.raises(IntegrityError):
                await repo.create(make_enriched(1))
            return await repo.count()

        assert run_with_repo(scenario) == 1

    def test_get_all_newest_first_with_paging(self, run_with_repo):
        async def scenario(repo):
            for n in (2, 5, 1, 4, 3):
                await repo.create(make_enriched(n))
            return await repo.get_all(limit=2), await repo.get_all(limit=2, offset=2)

        first, second = run_with_repo(scenario)

        assert [a.title for a in first] == ["Article 5", "Article 4"]
        assert [a.title for a in second] == ["Article 3", "Article 2"]


class TestFindSimilar:
    """Cosine nearest-neighbour search."""

    def test_ordered_by_ascending_distance(self, run_with_repo):
        async def scenario(repo):
            await repo.create(make_enriched(1, embedding=[0.0, 1.0, 0.0]))
            await repo.create(make_enriched(2, embedding=[1.0, 0.0, 0.0]))
            await repo.create(make_enriched(3, embedding=[1.0, 1.0, 0.0]))
            return await repo.find_similar([1.0, 0.0, 0.0], limit=10)

        results = run_with_repo(scenario)

        assert [a.title for a in results] == ["Article 2", "Article 3", "Article 1"]
        assert results[0].distance == pytest.approx(0.0, abs=1e-6)
        assert results[0].similarity == pytest.approx(1.0, abs=1e-6)
        assert results[2].distance == pytest.approx(1.0, abs=1e-6)
        distances = [a.distance for a in results]
        assert distances == sorted(distances)

    def test_limit(self, run_with_repo):
        async def scenario(repo):
            for n in range(1, 6):
                await repo.create(make_enriched(n, embedding=[1.0, float(n), 0.0]))
            return await repo.find_similar([1.0, 0.0, 0.0], limit=2)

        results = run_with_repo(scenario)

        assert len(results) == 2
        assert results[0].title == "Article 1"

    def test_mismatched_lengths_are_ignored(self, run_with_repo):
        async def scenario(repo):
            await repo.create(make_enriched(1, embedding=[1.0, 0.0]))
            await repo.create(make_enriched(2, embedding=[1.0, 0.0, 0.0]))
            return await repo.find_similar([1.0, 0.0, 0.0])

        results = run_with_repo(scenario)

        assert [a.title for a in results] == ["Article 2"]

    def test_empty_store(self, run_with_repo):
        async def scenario(repo):
            return await repo.find_similar([1.0, 0.0, 0.0])

        assert run_with_repo(scenario) == []

    @pytest.mark.parametrize("embedding, message", [
        ("not a list", "must be a list"),
        ([], "cannot be empty"),
        ([1.0, "x", 0.0], "only numbers"),
        ([True, False], "only numbers"),
    ])
    def test_invalid_query_embedding(self, run_with_repo, embedding, message):
        async def scenario(repo):
            with pytest.raises(ValueError, match=message):
                await repo.find_similar(embedding)

        run_with_repo(scenario)
