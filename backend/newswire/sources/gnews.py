"""
GNews adapter for current news articles.
API docs: https://gnews.io/docs/v4
"""
from datetime import datetime, timezone
from typing import Optional

import httpx
import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from newswire.config import Settings, get_settings
from newswire.core.errors import UpstreamUnavailableError
from newswire.models.domain import NewsArticle
from newswire.sources.base import NewsSource

logger = structlog.get_logger(__name__)

CATEGORIES = {
    "general",
    "world",
    "nation",
    "business",
    "technology",
    "entertainment",
    "sports",
    "science",
    "health",
}


class GNewsSource(NewsSource):
    """Adapter for fetching news articles from GNews."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self.base_url = self.settings.gnews_base_url.rstrip("/")
        self._client = client

    @property
    def name(self) -> str:
        return "GNews"

    def _has_api_key(self) -> bool:
        return bool(self.settings.gnews_api_key)

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def _fetch(self, endpoint: str, params: dict) -> dict:
        """GET an endpoint; connection failures are retried, HTTP errors are not."""
        if not self._has_api_key():
            raise ValueError("GNEWS_API_KEY not configured")

        params = {**params, "lang": self.settings.gnews_language, "apikey": self.settings.gnews_api_key}
        url = f"{self.base_url}/{endpoint}"

        if self._client is not None:
            response = await self._client.get(url, params=params)
        else:
            async with httpx.AsyncClient(timeout=self.settings.gnews_timeout_seconds) as client:
                response = await client.get(url, params=params)

        if not response.is_success:
            raise UpstreamUnavailableError(
                f"GNews API error: {response.status_code}",
                status_code=response.status_code,
            )
        return response.json()

    def _parse_article(self, data: dict) -> Optional[NewsArticle]:
        """Parse a GNews article into our NewsArticle model."""
        title = data.get("title")
        url = data.get("url")
        if not title or not url:
            return None

        published_at = self._parse_date(data.get("publishedAt"))
        source = data.get("source") or {}

        return NewsArticle(
            title=title,
            description=data.get("description") or "",
            content=data.get("content") or "",
            url=url,
            image=data.get("image") or None,
            published_at=published_at,
            source_name=source.get("name") or "Unknown",
            source_url=source.get("url"),
        )

    @staticmethod
    def _parse_date(value: Optional[str]) -> datetime:
        if value:
            try:
                return datetime.fromisoformat(value.replace("Z", "+00:00"))
            except ValueError:
                pass
        return datetime.now(timezone.utc)

    def _parse_articles(self, data: dict) -> list[NewsArticle]:
        articles = []
        for item in data.get("articles", []):
            article = self._parse_article(item)
            if article:
                articles.append(article)
        return articles

    async def fetch_by_category(self, category: str, max_results: int) -> list[NewsArticle]:
        if category not in CATEGORIES:
            logger.warning("Unknown GNews category", category=category)

        logger.info("Fetching headlines", category=category, max=max_results)
        data = await self._fetch(
            "top-headlines",
            {"category": category, "max": max_results},
        )
        articles = self._parse_articles(data)[:max_results]
        logger.info("Fetched articles", count=len(articles))
        return articles

    async def search(self, query: str, max_results: int) -> list[NewsArticle]:
        logger.info("Searching news", query=query, max=max_results)
        data = await self._fetch("search", {"q": query, "max": max_results})
        articles = self._parse_articles(data)[:max_results]
        logger.info("Found articles", count=len(articles))
        return articles

    async def health_check(self) -> bool:
        """Check if GNews is reachable with our key."""
        if not self._has_api_key():
            return False

        try:
            await self.search("news", 1)
            return True
        except (httpx.HTTPError, UpstreamUnavailableError):
            return False
