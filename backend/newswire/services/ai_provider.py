"""
AI provider adapters.

The enrichment core only needs two capabilities, ``summarize`` and ``embed``.
Provider SDKs live behind this interface and translate their failures into
``UpstreamError`` subclasses so the retry layer can classify them.
"""
import hashlib
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy as np
import structlog

from newswire.config import Settings
from newswire.core.errors import (
    UpstreamError,
    UpstreamNotFoundError,
    UpstreamRateLimitedError,
)

logger = structlog.get_logger(__name__)

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)s\s*$")


class AIProvider(ABC):
    """Capability interface for the upstream AI model."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def summarize(self, prompt: str) -> str:
        """Return the model's completion for a summarization prompt."""
        pass

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Return the embedding vector for ``text``."""
        pass


class GeminiProvider(AIProvider):
    """Google Gemini via the ``google-genai`` SDK."""

    def __init__(
        self,
        api_key: str,
        summary_model: str = "gemini-1.5-flash-latest",
        embedding_model: str = "text-embedding-004",
        client: Optional[Any] = None,
    ):
        if client is None:
            from google import genai

            client = genai.Client(api_key=api_key)
        self._client = client
        self.summary_model = summary_model
        self.embedding_model = embedding_model

    @property
    def name(self) -> str:
        return "gemini"

    async def summarize(self, prompt: str) -> str:
        try:
            response = await self._client.aio.models.generate_content(
                model=self.summary_model,
                contents=prompt,
            )
        except Exception as e:
            translated = self._translate(e)
            if translated is None:
                raise
            raise translated from e
        return response.text or ""

    async def embed(self, text: str) -> list[float]:
        try:
            response = await self._client.aio.models.embed_content(
                model=self.embedding_model,
                contents=text,
            )
        except Exception as e:
            translated = self._translate(e)
            if translated is None:
                raise
            raise translated from e

        if not response.embeddings:
            return []
        return list(response.embeddings[0].values or [])

    @classmethod
    def _translate(cls, exc: Exception) -> Optional[UpstreamError]:
        """Map an SDK error onto our upstream error classes."""
        from google.genai import errors as genai_errors

        if not isinstance(exc, genai_errors.APIError):
            return None

        message = exc.message or str(exc)
        if exc.code == 404 or exc.status == "NOT_FOUND":
            return UpstreamNotFoundError(message)
        if exc.code == 429 or exc.status == "RESOURCE_EXHAUSTED":
            return UpstreamRateLimitedError(
                message,
                retry_after=cls._parse_retry_delay(exc.details),
            )
        return UpstreamError(f"Gemini error {exc.code}: {message}")

    @staticmethod
    def _parse_retry_delay(details: Any) -> Optional[float]:
        """Pull ``RetryInfo.retryDelay`` (e.g. "17s") out of an error payload."""
        if not isinstance(details, dict):
            return None
        error = details.get("error", details)
        for item in error.get("details", []) or []:
            if not isinstance(item, dict):
                continue
            if str(item.get("@type", "")).endswith("RetryInfo"):
                match = _DURATION_RE.match(str(item.get("retryDelay", "")))
                if match:
                    return float(match.group(1))
        return None


class MockAIProvider(AIProvider):
    """
    Offline provider for development and tests.

    Summaries are the first sentences of the prompt body; embeddings are
    deterministic unit vectors seeded from a hash of the text.
    """

    def __init__(self, dimension: int = 768):
        self.dimension = dimension

    @property
    def name(self) -> str:
        return "mock"

    async def summarize(self, prompt: str) -> str:
        body = prompt.split("\n\n", 1)[-1].rsplit("\n\nSummary:", 1)[0]
        sentences = [s.strip() for s in body.replace("\n", " ").split(". ") if s.strip()]
        summary = ". ".join(sentences[:2])
        if summary and not summary.endswith("."):
            summary += "."
        return summary

    async def embed(self, text: str) -> list[float]:
        seed = int.from_bytes(hashlib.sha256(text.encode()).digest()[:8], "big")
        rng = np.random.default_rng(seed)
        vector = rng.standard_normal(self.dimension).astype(np.float32)
        norm = np.linalg.norm(vector)
        if norm > 0:
            vector = vector / norm
        return vector.tolist()


def create_ai_provider(settings: Settings) -> AIProvider:
    """Pick the provider for the current configuration."""
    if settings.gemini_api_key:
        logger.info("Using Gemini AI provider", summary_model=settings.enrichment.summary_model)
        return GeminiProvider(
            api_key=settings.gemini_api_key,
            summary_model=settings.enrichment.summary_model,
            embedding_model=settings.enrichment.embedding_model,
        )

    if settings.environment != "development":
        raise ValueError("GEMINI_API_KEY is required outside development")

    logger.warning("GEMINI_API_KEY not set, using mock AI provider")
    return MockAIProvider(dimension=settings.enrichment.embedding_dimension)
