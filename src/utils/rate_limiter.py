"""Token-bucket rate limiter for outbound provider calls.

The embedding provider is called once per chunk, strictly sequentially.
A bucket refilled at ``rate_per_second`` tokens per second (capacity 1 by
default) caps throughput at that rate: the first call goes straight
through, each later call waits until a token is available.  This is the
only backpressure applied to the embedding provider.

The clock and sleep functions are injectable so tests can drive the
limiter without real waiting.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

import structlog

logger = structlog.get_logger(logger_name=__name__)


class TokenBucketRateLimiter:
    """Async token bucket.

    Parameters
    ----------
    rate_per_second:
        Tokens added to the bucket per second.  Must be positive.
    capacity:
        Maximum tokens held.  ``1`` means no bursting.
    clock:
        Monotonic time source in seconds.
    sleep:
        Coroutine function used to wait.
    """

    def __init__(
        self,
        rate_per_second: float,
        capacity: int = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if rate_per_second <= 0:
            raise ValueError(f"rate_per_second must be positive, got {rate_per_second}")
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._rate = float(rate_per_second)
        self._capacity = float(capacity)
        self._tokens = float(capacity)
        self._updated_at: float | None = None
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()

    @property
    def rate_per_second(self) -> float:
        return self._rate

    async def acquire(self) -> float:
        """Take one token, waiting if the bucket is empty.

        Returns
        -------
        float
            Seconds spent waiting (``0.0`` when a token was available).
        """
        async with self._lock:
            now = self._clock()
            self._refill(now)

            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return 0.0

            wait = (1.0 - self._tokens) / self._rate
            logger.debug("rate_limiter_wait", wait_s=round(wait, 4), rate=self._rate)
            await self._sleep(wait)
            # The token that accrued while sleeping is consumed immediately.
            self._tokens = 0.0
            self._updated_at = (self._updated_at or now) + wait
            return wait

    def _refill(self, now: float) -> None:
        if self._updated_at is None:
            self._updated_at = now
            return
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(self._capacity, self._tokens + elapsed * self._rate)
        self._updated_at = max(self._updated_at, now)
