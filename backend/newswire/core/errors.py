"""
Error taxonomy for ingestion and enrichment.

Provider adapters raise ``UpstreamError`` subclasses; the retry layer turns
them into the terminal errors the pipeline reacts to:

- ``PermanentError``: never retried (e.g. the model does not exist)
- ``QuotaError``: stop the whole batch, further calls would fail too
- ``ValidationError``: malformed provider output, fails one candidate
"""
from typing import Optional


class NewswireError(Exception):
    """Base class for all application errors."""


# =============================================================================
# Upstream (raised by adapters)
# =============================================================================

class UpstreamError(NewswireError):
    """A provider call failed."""


class UpstreamNotFoundError(UpstreamError):
    """The requested resource or model does not exist upstream."""


class UpstreamRateLimitedError(UpstreamError):
    """Upstream answered "too many requests"."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class UpstreamUnavailableError(UpstreamError):
    """The news feed answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# =============================================================================
# Terminal classifications
# =============================================================================

class PermanentError(NewswireError):
    """Failure that no amount of retrying will fix."""


class ModelUnavailableError(PermanentError):
    def __init__(self, detail: str):
        super().__init__(f"AI model not available: {detail}")


class QuotaError(NewswireError):
    """Call budget is spent; the batch must stop."""


class QuotaExhaustedError(QuotaError):
    """The local daily budget is spent."""


class QuotaExceededError(QuotaError):
    """The provider kept rate limiting us until attempts ran out."""


class ValidationError(NewswireError):
    """Provider output failed validation."""


class InvalidEmbeddingDimensionsError(ValidationError):
    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Invalid embedding dimensions: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


# =============================================================================
# Pipeline / API
# =============================================================================

class IngestionCancelledError(NewswireError):
    """The batch was cancelled or timed out before finishing."""


class ArticleNotFoundError(NewswireError):
    def __init__(self, article_id: str):
        super().__init__(f"Article not found: {article_id}")
        self.article_id = article_id
