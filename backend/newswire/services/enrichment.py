"""
Article enrichment: an AI summary plus a fixed-dimension embedding.

Both upstream calls go through the ``RetryExecutor``, which shares one
``RateLimiter`` for the lifetime of the Enricher.
"""
import asyncio
from typing import Awaitable, Callable, Optional

import structlog

from newswire.config import EnrichmentSettings, Settings
from newswire.core.errors import InvalidEmbeddingDimensionsError
from newswire.models.domain import EnrichmentResult, RateLimitStatus
from newswire.services.ai_provider import AIProvider, create_ai_provider
from newswire.services.rate_limiter import RateLimiter
from newswire.services.retry import RetryExecutor

logger = structlog.get_logger(__name__)

SUMMARY_PROMPT = """Summarize this news article in 2-3 concise sentences:

{text}

Summary:"""


class Enricher:
    """
    Produces ``{summary, embedding}`` for an article's text.

    In sequential mode the embedding call waits ``inter_call_delay_seconds``
    after the summary, so the two calls never land in the same limiter tick.
    Concurrent mode submits both at once.
    """

    def __init__(
        self,
        provider: AIProvider,
        retry_executor: RetryExecutor,
        settings: Optional[EnrichmentSettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = provider
        self.retry_executor = retry_executor
        self.settings = settings or EnrichmentSettings()
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: Optional[AIProvider] = None,
    ) -> "Enricher":
        """Wire a provider, one rate limiter and a retry executor."""
        rate_limiter = RateLimiter.from_settings(settings.rate_limit)
        retry_executor = RetryExecutor.from_settings(rate_limiter, settings.retry)
        return cls(
            provider or create_ai_provider(settings),
            retry_executor,
            settings.enrichment,
        )

    @property
    def rate_limiter(self) -> RateLimiter:
        return self.retry_executor.rate_limiter

    def rate_limit_status(self) -> RateLimitStatus:
        return self.rate_limiter.get_status()

    async def summarize(self, text: str) -> str:
        """
        Generate a 2-3 sentence summary.

        Long input is cut to ``summary_max_chars`` and marked with "...".
        An empty model answer is returned as an empty string, not an error.
        """
        max_chars = self.settings.summary_max_chars
        truncated = text[:max_chars] + "..." if len(text) > max_chars else text
        prompt = SUMMARY_PROMPT.format(text=truncated)

        summary = await self.retry_executor.run(
            lambda: self.provider.summarize(prompt),
            label="summary",
        )
        summary = (summary or "").strip()

        logger.info("Summary created", chars=len(summary))
        return summary

    async def embed(self, text: str) -> list[float]:
        """
        Generate the embedding vector.

        Raises:
            InvalidEmbeddingDimensionsError: vector length differs from the model dimension
        """
        truncated = text[: self.settings.embedding_max_chars]

        embedding = await self.retry_executor.run(
            lambda: self.provider.embed(truncated),
            label="embedding",
        )

        expected = self.settings.embedding_dimension
        actual = len(embedding) if embedding is not None else 0
        if actual != expected:
            logger.error("Embedding has wrong dimensions", expected=expected, actual=actual)
            raise InvalidEmbeddingDimensionsError(expected, actual)

        logger.info("Embedding created", dimensions=actual)
        return [float(v) for v in embedding]

    async def _enrich_concurrently(self, text: str) -> tuple[str, list[float]]:
        """Run both calls at once; the first failure cancels the other call."""
        summary_task = asyncio.create_task(self.summarize(text))
        embed_task = asyncio.create_task(self.embed(text))
        try:
            summary, embedding = await asyncio.gather(summary_task, embed_task)
        except BaseException:
            summary_task.cancel()
            embed_task.cancel()
            await asyncio.gather(summary_task, embed_task, return_exceptions=True)
            raise
        return summary, embedding

    async def enrich_both(self, text: str) -> EnrichmentResult:
        """Summary and embedding together; either failing fails the whole call."""
        logger.info("Enriching article", mode=self.settings.mode, chars=len(text))

        if self.settings.mode == "concurrent":
            summary, embedding = await self._enrich_concurrently(text)
        else:
            summary = await self.summarize(text)
            await self._sleep(self.settings.inter_call_delay_seconds)
            embedding = await self.embed(text)

        return EnrichmentResult(summary=summary, embedding=embedding)

    enrich = enrich_both
