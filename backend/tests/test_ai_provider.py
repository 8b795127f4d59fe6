"""
Tests for the AI provider adapters.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import numpy as np
import pytest
from google.genai import errors as genai_errors

from newswire.config import Settings
from newswire.core.errors import (
    UpstreamError,
    UpstreamNotFoundError,
    UpstreamRateLimitedError,
)
from newswire.services.ai_provider import (
    GeminiProvider,
    MockAIProvider,
    create_ai_provider,
)

RATE_LIMITED = {
    "error": {
        "code": 429,
        "message": "Resource has been exhausted",
        "status": "RESOURCE_EXHAUSTED",
        "details": [
            {"@type": "type.googleapis.com/google.rpc.QuotaFailure"},
            {"@type": "type.googleapis.com/google.rpc.RetryInfo", "retryDelay": "17s"},
        ],
    }
}

NOT_FOUND = {
    "error": {
        "code": 404,
        "message": "models/gemini-0 is not found",
        "status": "NOT_FOUND",
    }
}


def make_provider():
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock()
    client.aio.models.embed_content = AsyncMock()
    provider = GeminiProvider(api_key="unused", client=client)
    return provider, client.aio.models


class TestGeminiProvider:
    """SDK calls and error translation."""

    def test_summarize(self):
        provider, models = make_provider()
        models.generate_content.return_value = SimpleNamespace(text="Markets rallied.")

        assert asyncio.run(provider.summarize("prompt")) == "Markets rallied."
        models.generate_content.assert_awaited_once_with(
            model="gemini-1.5-flash-latest", contents="prompt"
        )

    def test_summarize_without_text(self):
        provider, models = make_provider()
        models.generate_content.return_value = SimpleNamespace(text=None)

        assert asyncio.run(provider.summarize("prompt")) == ""

    def test_embed(self):
        provider, models = make_provider()
        models.embed_content.return_value = SimpleNamespace(
            embeddings=[SimpleNamespace(values=[0.1, 0.2, 0.3])]
        )

        assert asyncio.run(provider.embed("text")) == [0.1, 0.2, 0.3]
        models.embed_content.assert_awaited_once_with(
            model="text-embedding-004", contents="text"
        )

    def test_rate_limit_carries_retry_hint(self):
        provider, models = make_provider()
        models.generate_content.side_effect = genai_errors.ClientError(429, RATE_LIMITED)

        with pytest.raises(UpstreamRateLimitedError) as exc_info:
            asyncio.run(provider.summarize("prompt"))

        assert exc_info.value.retry_after == 17.0

    def test_not_found(self):
        provider, models = make_provider()
        models.embed_content.side_effect = genai_errors.ClientError(404, NOT_FOUND)

        with pytest.raises(UpstreamNotFoundError, match="is not found"):
            asyncio.run(provider.embed("text"))

    def test_other_api_errors_are_generic(self):
        provider, models = make_provider()
        models.generate_content.side_effect = genai_errors.ServerError(
            503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}}
        )

        with pytest.raises(UpstreamError) as exc_info:
            asyncio.run(provider.summarize("prompt"))

        assert not isinstance(exc_info.value, (UpstreamNotFoundError, UpstreamRateLimitedError))

    def test_non_sdk_errors_pass_through(self):
        provider, models = make_provider()
        models.generate_content.side_effect = ConnectionError("reset")

        with pytest.raises(ConnectionError):
            asyncio.run(provider.summarize("prompt"))

    @pytest.mark.parametrize("details, expected", [
        (RATE_LIMITED, 17.0),
        (RATE_LIMITED["error"], 17.0),
        ({"error": {"details": [{"@type": "x.RetryInfo", "retryDelay": "2.5s"}]}}, 2.5),
        ({"error": {"details": []}}, None),
        (None, None),
    ])
    def test_parse_retry_delay(self, details, expected):
        assert GeminiProvider._parse_retry_delay(details) == expected


class TestMockProvider:
    """Offline provider."""

    def test_summary_is_first_two_sentences(self):
        prompt = "Summarize this:\n\nOne. Two. Three.\n\nSummary:"

        assert asyncio.run(MockAIProvider().summarize(prompt)) == "One. Two."

    def test_embedding_is_deterministic_unit_vector(self):
        provider = MockAIProvider(dimension=64)

        first = asyncio.run(provider.embed("hello"))
        second = asyncio.run(provider.embed("hello"))
        other = asyncio.run(provider.embed("goodbye"))

        assert len(first) == 64
        assert first == second
        assert first != other
        assert np.linalg.norm(first) == pytest.approx(1.0, abs=1e-5)


class TestFactory:
    """Provider selection."""

    def test_mock_in_development(self):
        provider = create_ai_provider(Settings(environment="development", gemini_api_key=None))

        assert provider.name == "mock"

    def test_key_required_in_production(self):
        with pytest.raises(ValueError, match="GEMINI_API_KEY"):
            create_ai_provider(Settings(environment="production", gemini_api_key=None))
