"""
Batch ingestion: fetch, dedup, enrich and persist news articles.

Candidates are processed strictly in fetch order. Per-candidate failures are
recorded in the ``BatchResult``; only quota exhaustion and cancellation stop
the batch early. Fetch failures propagate to the caller.
"""
import asyncio
import contextlib
from typing import Optional

import structlog

from newswire.config import IngestionSettings
from newswire.core.errors import IngestionCancelledError, QuotaError
from newswire.models.domain import (
    BatchResult,
    EnrichedArticle,
    EnrichmentResult,
    IngestionSource,
    IngestionStats,
    NewsArticle,
    SourceKind,
)
from newswire.repositories.articles import ArticleStore
from newswire.services.enrichment import Enricher
from newswire.sources.base import NewsSource

logger = structlog.get_logger(__name__)


class IngestionPipeline:
    """
    Orchestrates one ingestion batch.

    Candidate lifecycle: fetched -> skipped | enriching -> persisted | failed.
    Nothing is retried at this level; retries live in the RetryExecutor.
    """

    def __init__(
        self,
        news: NewsSource,
        store: ArticleStore,
        enricher: Enricher,
        settings: Optional[IngestionSettings] = None,
    ):
        self.news = news
        self.store = store
        self.enricher = enricher
        self.settings = settings or IngestionSettings()

    def clamp_max_articles(self, requested: Optional[int]) -> int:
        """Silently reduce the request to the batch ceiling."""
        ceiling = self.settings.max_articles_ceiling
        if requested is None:
            return ceiling
        return max(1, min(requested, ceiling))

    async def _fetch(self, source: IngestionSource, max_articles: int) -> list[NewsArticle]:
        if source.kind == SourceKind.CATEGORY:
            articles = await self.news.fetch_by_category(source.value, max_articles)
        else:
            articles = await self.news.search(source.value, max_articles)
        return list(articles)[:max_articles]

    async def _enrich_or_cancel(
        self,
        text: str,
        stop: asyncio.Event,
    ) -> EnrichmentResult:
        """Enrich, abandoning pending sleeps as soon as the batch is cancelled."""
        enrich_task = asyncio.create_task(self.enricher.enrich_both(text))
        cancel_task = asyncio.create_task(stop.wait())
        try:
            await asyncio.wait(
                {enrich_task, cancel_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            enrich_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await enrich_task
            raise
        finally:
            cancel_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await cancel_task

        if not enrich_task.done():
            enrich_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await enrich_task
            raise IngestionCancelledError("Enrichment cancelled")

        return enrich_task.result()

    async def run(
        self,
        source: IngestionSource,
        max_articles: Optional[int] = None,
        cancel_event: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> BatchResult:
        """
        Run one batch.

        Args:
            source: Category filter or free-text query
            max_articles: Requested batch size, clamped to the ceiling
            cancel_event: Set it to stop the batch; the timeout never sets it
            timeout: Seconds before the batch cancels itself

        Returns:
            BatchResult; counters sum to less than ``total`` only on early stop
        """
        limit = self.clamp_max_articles(max_articles)
        if max_articles is not None and max_articles > limit:
            logger.warning(
                "Batch size reduced to ceiling",
                requested=max_articles,
                ceiling=limit,
            )

        # Batch-local stop flag, fed by the caller's event and the timer
        stop = asyncio.Event()
        relay = None
        if cancel_event is not None:
            relay = asyncio.create_task(self._relay_cancel(cancel_event, stop))

        timeout = timeout if timeout is not None else self.settings.batch_timeout_seconds
        timer = None
        if timeout is not None:
            timer = asyncio.get_running_loop().call_later(timeout, stop.set)

        try:
            return await self._run_batch(source, limit, stop, cancel_event)
        finally:
            if timer is not None:
                timer.cancel()
            if relay is not None:
                relay.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await relay

    @staticmethod
    async def _relay_cancel(cancel_event: asyncio.Event, stop: asyncio.Event) -> None:
        await cancel_event.wait()
        stop.set()

    async def _run_batch(
        self,
        source: IngestionSource,
        limit: int,
        stop: asyncio.Event,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> BatchResult:
        logger.info("Starting ingestion", kind=source.kind.value, value=source.value, max=limit)

        articles = await self._fetch(source, limit)
        result = BatchResult(total=len(articles))
        category = source.value if source.kind == SourceKind.CATEGORY else None

        quota = self.enricher.rate_limit_status()
        logger.info(
            "Processing articles",
            count=len(articles),
            daily_requests_remaining=quota.daily_requests_remaining,
            daily_reset_in_seconds=quota.daily_reset_in_seconds,
        )

        for index, article in enumerate(articles, start=1):
            if cancel_event is not None and cancel_event.is_set():
                stop.set()
            if stop.is_set():
                logger.warning("Ingestion cancelled", processed=result.processed)
                result.errors.append(f"Ingestion cancelled after {result.success} articles")
                break

            log = logger.bind(url=article.url, index=index, total=len(articles))
            log.info("Processing article")

            try:
                if await self.store.exists_by_url(article.url):
                    log.info("Article already exists, skipping", title=article.title[:50])
                    result.skipped += 1
                    continue

                enrichment = await self._enrich_or_cancel(
                    article.enrichment_text(), stop
                )
                await self.store.create(
                    EnrichedArticle.from_candidate(article, enrichment, category)
                )
                result.success += 1
                log.info("Article saved", title=article.title[:50])

            except QuotaError as e:
                result.failed += 1
                result.errors.append(f"Quota exceeded after {result.success} articles: {e}")
                log.error("Quota exceeded, stopping ingestion", success=result.success, error=str(e))
                break

            except IngestionCancelledError:
                result.failed += 1
                result.errors.append(
                    f"Ingestion cancelled after {result.success} articles "
                    f"({article.url} interrupted)"
                )
                log.warning("Ingestion cancelled during enrichment")
                break

            except Exception as e:
                result.failed += 1
                result.errors.append(f"{article.url}: {e}")
                log.error("Failed to process article", error=str(e))

        logger.info(
            "Ingestion complete",
            success=result.success,
            failed=result.failed,
            skipped=result.skipped,
            total=result.total,
        )
        return result

    async def ingest_category(
        self,
        category: Optional[str] = None,
        max_articles: Optional[int] = None,
        **kwargs,
    ) -> BatchResult:
        """Fetch top headlines for a category and ingest them."""
        source = IngestionSource.category(category or self.settings.default_category)
        return await self.run(source, max_articles, **kwargs)

    async def search_and_ingest(
        self,
        query: str,
        max_articles: Optional[int] = None,
        **kwargs,
    ) -> BatchResult:
        """Search the news feed and ingest the matches."""
        return await self.run(IngestionSource.query(query), max_articles, **kwargs)

    async def stats(self) -> IngestionStats:
        """Stored article count plus the current AI quota."""
        total = await self.store.count()
        return IngestionStats(
            total_articles=total,
            api_quota=self.enricher.rate_limit_status(),
        )
