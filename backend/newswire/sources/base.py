"""
Base interface for news sources.
"""
from abc import ABC, abstractmethod

from newswire.models.domain import NewsArticle


class NewsSource(ABC):
    """Abstract base class for news feed adapters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the source."""
        pass

    @abstractmethod
    async def fetch_by_category(self, category: str, max_results: int) -> list[NewsArticle]:
        """
        Fetch top headlines for a category, in feed order.

        Raises:
            UpstreamUnavailableError: the feed answered with a non-success status
        """
        pass

    @abstractmethod
    async def search(self, query: str, max_results: int) -> list[NewsArticle]:
        """
        Free-text search, in feed order.

        Raises:
            UpstreamUnavailableError: the feed answered with a non-success status
        """
        pass

    async def health_check(self) -> bool:
        """Check if the source is available."""
        return True
