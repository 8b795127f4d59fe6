"""
Domain models for Newswire.
These are the core business entities, independent of database/API representation.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


# =============================================================================
# Articles
# =============================================================================

class NewsArticle(BaseModel):
    """A candidate article as returned by the news feed."""
    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""
    content: str = ""
    url: str  # Unique key across the system
    image: Optional[str] = None
    published_at: datetime
    source_name: str = "Unknown"
    source_url: Optional[str] = None

    def enrichment_text(self) -> str:
        """Text submitted for summary and embedding."""
        return f"{self.title}\n\n{self.description}\n\n{self.content}"


class EnrichmentResult(BaseModel):
    """Output of one enrichment: both parts or nothing."""
    summary: str
    embedding: list[float]


class EnrichedArticle(BaseModel):
    """Candidate plus its AI enrichment, ready to persist."""
    title: str
    summary: str
    url: str
    published_at: datetime
    embedding: list[float]
    source: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None

    @classmethod
    def from_candidate(
        cls,
        article: NewsArticle,
        enrichment: EnrichmentResult,
        category: Optional[str] = None,
    ) -> "EnrichedArticle":
        return cls(
            title=article.title,
            summary=enrichment.summary,
            url=article.url,
            published_at=article.published_at,
            embedding=enrichment.embedding,
            source=article.source_name,
            category=category,
            image=article.image,
        )


class StoredArticle(BaseModel):
    """Persisted article."""
    id: str
    title: str
    summary: str
    url: str
    published_at: datetime
    source: Optional[str] = None
    category: Optional[str] = None
    image: Optional[str] = None
    created_at: Optional[datetime] = None
    embedding: Optional[list[float]] = None


class SimilarArticle(StoredArticle):
    """Stored article annotated with its distance to a query embedding."""
    distance: float
    similarity: float


# =============================================================================
# Ingestion
# =============================================================================

class SourceKind(str, Enum):
    CATEGORY = "category"
    QUERY = "query"


class IngestionSource(BaseModel):
    """What to fetch: a category filter or a free-text query."""
    model_config = ConfigDict(frozen=True)

    kind: SourceKind
    value: str = Field(min_length=1)

    @classmethod
    def category(cls, name: str) -> "IngestionSource":
        return cls(kind=SourceKind.CATEGORY, value=name)

    @classmethod
    def query(cls, text: str) -> "IngestionSource":
        return cls(kind=SourceKind.QUERY, value=text)


class BatchResult(BaseModel):
    """
    Outcome of one ingestion batch.

    success + failed + skipped <= total; the sum is lower only when the
    batch stopped early, in which case ``errors`` says why.
    """
    success: int = 0
    failed: int = 0
    skipped: int = 0
    total: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def processed(self) -> int:
        return self.success + self.failed + self.skipped

    @property
    def stopped_early(self) -> bool:
        return self.processed < self.total

    def __str__(self) -> str:
        status = "✓" if not self.errors else "✗"
        return (
            f"{status} success={self.success}, failed={self.failed}, "
            f"skipped={self.skipped}, total={self.total}, errors={len(self.errors)}"
        )


class RateLimitStatus(BaseModel):
    """Snapshot of the AI call budget."""
    minute_requests_remaining: int
    minute_reset_in_seconds: float
    daily_requests_remaining: int
    daily_reset_in_seconds: float

    @computed_field
    @property
    def daily_reset_in_hours(self) -> float:
        return round(self.daily_reset_in_seconds / 3600, 2)


class IngestionStats(BaseModel):
    """Composite read-only view: stored articles + remaining quota."""
    total_articles: int
    api_quota: RateLimitStatus
