"""
Retry wrapper for upstream AI calls.

Every attempt (retries included) first takes a slot from the rate limiter.
Failures are classified:

- not found: fail immediately as ``ModelUnavailableError``
- rate limited: back off (server hint or exponential), finally ``QuotaExceededError``
- anything else: exponential backoff, finally the original error
"""
import asyncio
from typing import Awaitable, Callable, Optional, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
)
from tenacity.wait import wait_base

from newswire.config import RetrySettings
from newswire.core.errors import (
    ModelUnavailableError,
    PermanentError,
    QuotaError,
    QuotaExceededError,
    UpstreamNotFoundError,
    UpstreamRateLimitedError,
    ValidationError,
)
from newswire.services.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)

T = TypeVar("T")

_NON_RETRYABLE = (
    UpstreamNotFoundError,
    PermanentError,
    QuotaError,
    ValidationError,
)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, Exception) and not isinstance(exc, _NON_RETRYABLE)


class wait_upstream_backoff(wait_base):
    """initial * 2^attempt, raised to the server's retry hint when rate limited."""

    def __init__(self, initial_delay: float):
        self.initial_delay = initial_delay

    def __call__(self, retry_state: RetryCallState) -> float:
        # attempt_number is 1-based; the backoff exponent is zero-based
        delay = self.initial_delay * (2 ** (retry_state.attempt_number - 1))
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        if isinstance(exc, UpstreamRateLimitedError) and exc.retry_after:
            delay = max(delay, exc.retry_after)
        return delay


class RetryExecutor:
    """Runs a fallible async operation under the rate limiter with retries."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        max_attempts: int = 3,
        initial_delay: float = 2.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.rate_limiter = rate_limiter
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        rate_limiter: RateLimiter,
        settings: RetrySettings,
        **kwargs,
    ) -> "RetryExecutor":
        return cls(
            rate_limiter,
            max_attempts=settings.max_attempts,
            initial_delay=settings.initial_delay_seconds,
            **kwargs,
        )

    def _log_retry(self, label: str) -> Callable[[RetryCallState], None]:
        def before_sleep(retry_state: RetryCallState) -> None:
            exc = retry_state.outcome.exception()
            logger.warning(
                "Upstream call failed, retrying",
                label=label,
                attempt=retry_state.attempt_number,
                delay=round(retry_state.next_action.sleep, 2),
                rate_limited=isinstance(exc, UpstreamRateLimitedError),
                error=str(exc),
            )

        return before_sleep

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        label: str,
        max_attempts: Optional[int] = None,
        initial_delay: Optional[float] = None,
    ) -> T:
        """
        Run ``operation`` with rate limiting and retries.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            label: Name used in logs and error messages
            max_attempts: Total tries (defaults to the executor's setting)
            initial_delay: First backoff delay in seconds

        Raises:
            QuotaError: local budget spent, or provider rate limiting outlasted retries
            ModelUnavailableError: the provider says the model does not exist
        """
        attempts = max_attempts or self.max_attempts
        delay = self.initial_delay if initial_delay is None else initial_delay

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_upstream_backoff(delay),
            retry=retry_if_exception(_is_retryable),
            before_sleep=self._log_retry(label),
            sleep=self._sleep,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    await self.rate_limiter.acquire()
                    result = await operation()
        except UpstreamNotFoundError as e:
            logger.error("Upstream resource not found", label=label, error=str(e))
            raise ModelUnavailableError(str(e)) from e
        except UpstreamRateLimitedError as e:
            logger.error("Upstream rate limit outlasted retries", label=label, attempts=attempts)
            raise QuotaExceededError(
                f"AI provider quota exceeded for {label} after {attempts} attempts: {e}"
            ) from e

        return result
