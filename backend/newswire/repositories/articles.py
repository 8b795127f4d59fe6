"""
Article persistence.

``ArticleStore`` is the contract the ingestion pipeline relies on;
``ArticleRepository`` implements it on top of the SQLAlchemy models.
"""
from abc import ABC, abstractmethod
from numbers import Real
from typing import Optional

import numpy as np
import structlog
from sqlalchemy import exists, func, select

from newswire.models.database import Database, DBArticle
from newswire.models.domain import EnrichedArticle, SimilarArticle, StoredArticle

logger = structlog.get_logger(__name__)


class ArticleStore(ABC):
    """Operations the ingestion core needs from storage."""

    @abstractmethod
    async def exists_by_url(self, url: str) -> bool:
        pass

    @abstractmethod
    async def create(self, article: EnrichedArticle) -> StoredArticle:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def find_similar(
        self,
        embedding: list[float],
        limit: int = 10,
    ) -> list[SimilarArticle]:
        """Stored articles ordered by ascending distance to ``embedding``."""
        pass


def _to_stored(row: DBArticle, include_embedding: bool = False) -> StoredArticle:
    return StoredArticle(
        id=row.id,
        title=row.title,
        summary=row.content_summary,
        url=row.url,
        published_at=row.published_at,
        source=row.source,
        category=row.category,
        image=row.image,
        created_at=row.created_at,
        embedding=row.embedding_json if include_embedding else None,
    )


class ArticleRepository(ArticleStore):
    """SQLAlchemy-backed article store."""

    def __init__(self, database: Database):
        self.database = database

    async def create(self, article: EnrichedArticle) -> StoredArticle:
        """Save a new article."""
        db_article = DBArticle(
            title=article.title,
            content_summary=article.summary,
            url=article.url,
            published_at=article.published_at,
            embedding_json=list(article.embedding),
            source=article.source,
            category=article.category,
            image=article.image,
        )

        async with self.database.async_session() as session:
            session.add(db_article)
            await session.commit()
            await session.refresh(db_article)

        logger.info("Article saved", id=db_article.id, url=article.url)
        return _to_stored(db_article)

    async def exists_by_url(self, url: str) -> bool:
        async with self.database.async_session() as session:
            result = await session.execute(
                select(exists().where(DBArticle.url == url))
            )
            return bool(result.scalar())

    async def get_all(self, limit: int = 50, offset: int = 0) -> list[StoredArticle]:
        """Newest articles first."""
        async with self.database.async_session() as session:
            result = await session.execute(
                select(DBArticle)
                .order_by(DBArticle.published_at.desc())
                .limit(limit)
                .offset(offset)
            )
            return [_to_stored(row) for row in result.scalars().all()]

    async def get_by_id(self, article_id: str) -> Optional[StoredArticle]:
        """Fetch one article, embedding included."""
        async with self.database.async_session() as session:
            row = await session.get(DBArticle, article_id)
            if row is None:
                return None
            return _to_stored(row, include_embedding=True)

    async def count(self) -> int:
        async with self.database.async_session() as session:
            result = await session.execute(select(func.count(DBArticle.id)))
            return int(result.scalar() or 0)

    async def find_similar(
        self,
        embedding: list[float],
        limit: int = 10,
    ) -> list[SimilarArticle]:
        """
        Nearest articles by cosine distance.

        Rows without an embedding, or with one of a different length,
        are ignored.
        """
        if not isinstance(embedding, (list, tuple)):
            raise ValueError(f"Embedding must be a list, got {type(embedding).__name__}")
        if len(embedding) == 0:
            raise ValueError("Embedding array cannot be empty")
        if not all(isinstance(v, Real) and not isinstance(v, bool) for v in embedding):
            raise ValueError("Embedding must contain only numbers")

        async with self.database.async_session() as session:
            result = await session.execute(
                select(DBArticle).where(DBArticle.embedding_json.is_not(None))
            )
            rows = [
                row for row in result.scalars().all()
                if row.embedding_json and len(row.embedding_json) == len(embedding)
            ]

        if not rows:
            return []

        query = np.asarray(embedding, dtype=np.float32)
        corpus = np.asarray([row.embedding_json for row in rows], dtype=np.float32)

        norms = np.linalg.norm(corpus, axis=1) * np.linalg.norm(query)
        norms = np.where(norms > 0, norms, 1)  # Avoid division by zero
        similarities = corpus @ query / norms
        distances = 1.0 - similarities

        order = np.argsort(distances, kind="stable")[:limit]
        logger.debug("Similarity search", candidates=len(rows), returned=len(order))

        return [
            SimilarArticle(
                **_to_stored(rows[i]).model_dump(),
                distance=float(distances[i]),
                similarity=float(similarities[i]),
            )
            for i in order
        ]
