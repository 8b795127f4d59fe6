"""
Rate limiting for upstream AI calls.

One limiter guards one provider account: a per-minute window, a per-day
window and a minimum spacing between consecutive calls.
"""

import asyncio
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

import structlog

from newswire.config import RateLimitSettings
from newswire.core.errors import QuotaExhaustedError
from newswire.models.domain import RateLimitStatus

logger = structlog.get_logger(__name__)

MINUTE_SECONDS = 60.0
DAY_SECONDS = 24 * 60 * 60.0


@dataclass
class RateBudget:
    """Mutable call budget. Only ``RateLimiter`` touches it."""
    minute_count: int = 0
    minute_window_end: float = 0.0
    day_count: int = 0
    day_window_end: float = 0.0
    last_call_at: Optional[float] = None


class RateLimiter:
    """
    Fixed-window rate limiter with minimum call spacing.

    Features:
    - Minute and day budgets, each reset once its window ends
    - Day exhaustion fails fast instead of waiting
    - Async-safe: the budget is only changed while holding the lock,
      so concurrent batches never spend the same slot twice
    """

    def __init__(
        self,
        max_per_minute: int = 10,
        max_per_day: int = 1000,
        min_interval: float = 6.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.max_per_minute = max_per_minute
        self.max_per_day = max_per_day
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._budget = RateBudget()
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: RateLimitSettings, **kwargs) -> "RateLimiter":
        return cls(
            max_per_minute=settings.max_per_minute,
            max_per_day=settings.max_per_day,
            min_interval=settings.min_interval_seconds,
            **kwargs,
        )

    def _roll_windows(self, now: float) -> None:
        budget = self._budget
        if now >= budget.minute_window_end:
            budget.minute_count = 0
            budget.minute_window_end = now + MINUTE_SECONDS
        if now >= budget.day_window_end:
            budget.day_count = 0
            budget.day_window_end = now + DAY_SECONDS

    async def acquire(self) -> None:
        """
        Wait for a call slot and reserve it.

        Raises:
            QuotaExhaustedError: the daily budget is already spent
        """
        async with self._lock:
            budget = self._budget
            now = self._clock()
            self._roll_windows(now)

            if budget.day_count >= self.max_per_day:
                reset_in = budget.day_window_end - now
                logger.warning(
                    "Daily AI quota exhausted",
                    max_per_day=self.max_per_day,
                    reset_in_seconds=round(reset_in, 1),
                )
                raise QuotaExhaustedError(
                    f"Daily API quota exceeded ({self.max_per_day} requests). "
                    f"Resets in {reset_in / 3600:.1f}h"
                )

            if budget.minute_count >= self.max_per_minute:
                wait_seconds = budget.minute_window_end - now
                logger.info(
                    "Minute quota reached, waiting for window reset",
                    wait_seconds=round(wait_seconds, 1),
                )
                await self._sleep(wait_seconds)
                now = self._clock()
                budget.minute_count = 0
                budget.minute_window_end = now + MINUTE_SECONDS

            if budget.last_call_at is not None:
                elapsed = now - budget.last_call_at
                if elapsed < self.min_interval:
                    wait_seconds = self.min_interval - elapsed
                    logger.debug("Spacing AI calls", wait_seconds=round(wait_seconds, 1))
                    await self._sleep(wait_seconds)
                    now = self._clock()

            self._roll_windows(now)
            budget.minute_count += 1
            budget.day_count += 1
            budget.last_call_at = now

    def get_status(self) -> RateLimitStatus:
        """Remaining budget and time to each reset. Does not mutate state."""
        budget = self._budget
        now = self._clock()

        if now >= budget.minute_window_end:
            minute_remaining = self.max_per_minute
            minute_reset_in = 0.0
        else:
            minute_remaining = self.max_per_minute - budget.minute_count
            minute_reset_in = budget.minute_window_end - now

        if now >= budget.day_window_end:
            day_remaining = self.max_per_day
            day_reset_in = 0.0
        else:
            day_remaining = self.max_per_day - budget.day_count
            day_reset_in = budget.day_window_end - now

        return RateLimitStatus(
            minute_requests_remaining=max(0, minute_remaining),
            minute_reset_in_seconds=round(minute_reset_in, 1),
            daily_requests_remaining=max(0, day_remaining),
            daily_reset_in_seconds=round(day_reset_in, 1),
        )

    status = get_status
