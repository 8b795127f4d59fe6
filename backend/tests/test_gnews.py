"""
Tests for the GNews adapter, served by an in-process httpx transport.
"""

import asyncio
from datetime import datetime, timezone

import httpx
import pytest

from newswire.config import Settings
from newswire.core.errors import UpstreamUnavailableError
from newswire.sources.gnews import GNewsSource

ARTICLES = {
    "totalArticles": 3,
    "articles": [
        {
            "title": "Central bank holds rates",
            "description": "Policy unchanged.",
            "content": "The central bank kept rates on hold...",
            "url": "https://news.example.com/rates",
            "image": "https://img.example.com/rates.jpg",
            "publishedAt": "2024-01-15T10:30:00Z",
            "source": {"name": "Example Wire", "url": "https://news.example.com"},
        },
        {
            "title": "",
            "url": "https://news.example.com/untitled",
            "publishedAt": "2024-01-15T09:00:00Z",
        },
        {
            "title": "No description here",
            "url": "https://news.example.com/bare",
            "publishedAt": "not a date",
            "source": {},
        },
    ],
}


def make_source(handler, api_key="test-key") -> tuple[GNewsSource, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    settings = Settings(gnews_api_key=api_key, gnews_language="en")
    client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
    return GNewsSource(settings, client=client), requests


class TestRequests:
    """Endpoints and query parameters."""

    def test_fetch_by_category(self):
        source, requests = make_source(lambda r: httpx.Response(200, json=ARTICLES))

        articles = asyncio.run(source.fetch_by_category("business", 3))

        assert len(articles) == 2
        request = requests[0]
        assert request.url.path == "/api/v4/top-headlines"
        assert request.url.params["category"] == "business"
        assert request.url.params["max"] == "3"
        assert request.url.params["lang"] == "en"
        assert request.url.params["apikey"] == "test-key"

    def test_search(self):
        source, requests = make_source(lambda r: httpx.Response(200, json=ARTICLES))

        asyncio.run(source.search("central bank", 2))

        request = requests[0]
        assert request.url.path == "/api/v4/search"
        assert request.url.params["q"] == "central bank"
        assert request.url.params["max"] == "2"

    def test_results_are_capped(self):
        source, _ = make_source(lambda r: httpx.Response(200, json=ARTICLES))

        articles = asyncio.run(source.search("news", 1))

        assert [a.url for a in articles] == ["https://news.example.com/rates"]


class TestParsing:
    """Mapping GNews items onto candidates."""

    def test_full_article(self):
        source, _ = make_source(lambda r: httpx.Response(200, json=ARTICLES))

        article = asyncio.run(source.search("rates", 3))[0]

        assert article.title == "Central bank holds rates"
        assert article.description == "Policy unchanged."
        assert article.image == "https://img.example.com/rates.jpg"
        assert article.published_at == datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)
        assert article.source_name == "Example Wire"

    def test_missing_fields_fall_back(self):
        source, _ = make_source(lambda r: httpx.Response(200, json=ARTICLES))

        article = asyncio.run(source.search("rates", 3))[1]

        assert article.url == "https://news.example.com/bare"
        assert article.description == ""
        assert article.content == ""
        assert article.image is None
        assert article.source_name == "Unknown"
        assert article.published_at.tzinfo is not None

    def test_empty_response(self):
        source, _ = make_source(lambda r: httpx.Response(200, json={"articles": []}))

        assert asyncio.run(source.fetch_by_category("general", 3)) == []


class TestFailures:
    """HTTP and configuration errors."""

    def test_error_status_is_not_retried(self):
        source, requests = make_source(
            lambda r: httpx.Response(403, json={"errors": ["Forbidden"]})
        )

        with pytest.raises(UpstreamUnavailableError) as exc_info:
            asyncio.run(source.fetch_by_category("general", 3))

        assert exc_info.value.status_code == 403
        assert str(exc_info.value) == "GNews API error: 403"
        assert len(requests) == 1

    def test_missing_api_key(self):
        source, requests = make_source(lambda r: httpx.Response(200, json=ARTICLES), api_key=None)

        with pytest.raises(ValueError, match="GNEWS_API_KEY"):
            asyncio.run(source.search("news", 3))

        assert requests == []

    def test_health_check_without_key(self):
        source, _ = make_source(lambda r: httpx.Response(200, json=ARTICLES), api_key=None)

        assert asyncio.run(source.health_check()) is False

    def test_health_check_reports_upstream_errors(self):
        source, _ = make_source(lambda r: httpx.Response(500))

        assert asyncio.run(source.health_check()) is False
