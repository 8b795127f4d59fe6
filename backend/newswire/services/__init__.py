"""
Services layer - core business logic for Newswire.

The services implement the ingestion core:

1. Rate limiting (rate_limiter.py):
   - Minute and day call budgets for the AI provider
   - Minimum spacing between calls

2. Retries (retry.py):
   - Exponential backoff with error classification
   - Every attempt goes through the rate limiter

3. AI provider (ai_provider.py):
   - Gemini adapter and an offline mock behind one interface

4. Enrichment (enrichment.py):
   - Summary + embedding per article, with input truncation
   - Embedding dimension validation

5. Ingestion (ingestion.py):
   - Batch orchestration: fetch, dedup, enrich, persist
   - Early stop on quota exhaustion or cancellation
"""

from newswire.services.ai_provider import (
    AIProvider,
    GeminiProvider,
    MockAIProvider,
    create_ai_provider,
)
from newswire.services.enrichment import Enricher
from newswire.services.ingestion import IngestionPipeline
from newswire.services.rate_limiter import RateBudget, RateLimiter
from newswire.services.retry import RetryExecutor

__all__ = [
    # Rate limiting
    "RateBudget",
    "RateLimiter",
    # Retries
    "RetryExecutor",
    # AI provider
    "AIProvider",
    "GeminiProvider",
    "MockAIProvider",
    "create_ai_provider",
    # Enrichment
    "Enricher",
    # Ingestion
    "IngestionPipeline",
]
