"""Rate limiting and retry helpers shared by all strategies."""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

from papercrawler.crawlers.errors import ExtractionError, NavigationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RateLimiter:
    """Spaces out page or feed transitions for one source.

    Applied once per page/feed, never per item.
    """

    def __init__(self, requests_per_minute: Optional[float], jitter: float = 3.0):
        self.requests_per_minute = requests_per_minute
        self.jitter = jitter

    def delay(self) -> float:
        """Seconds to wait before the next request (0 when unthrottled)."""
        if not self.requests_per_minute:
            return 0.0
        base = 60.0 / self.requests_per_minute
        return base + (random.uniform(0, self.jitter) if self.jitter > 0 else 0.0)

    async def wait(self) -> None:
        seconds = self.delay()
        if seconds > 0:
            logger.debug("Rate limit: sleeping %.1fs", seconds)
            await asyncio.sleep(seconds)


class RetryPolicy:
    """Linear backoff retry: the n-th failure waits ``base_delay * n`` seconds."""

    def __init__(self, max_attempts: int = 3, base_delay: float = 10.0, jitter: float = 0.0):
        self.max_attempts = max(1, max_attempts)
        self.base_delay = base_delay
        self.jitter = jitter

    def delay_for(self, attempt: int) -> float:
        """Backoff in seconds after failed attempt number *attempt* (1-based)."""
        delay = self.base_delay * attempt
        if self.jitter > 0:
            delay += random.uniform(0, self.jitter)
        return delay

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        on_failure: Optional[Callable[[Exception, int], Awaitable[None]]] = None,
        retry_on: tuple[type[BaseException], ...] = (NavigationError, ExtractionError),
    ) -> T:
        """Await ``operation()`` until it succeeds or attempts run out.

        Args:
            operation: Zero-argument coroutine factory, called once per attempt
            on_failure: Awaited with ``(error, attempt)`` before each retry
            retry_on: Exception types that trigger a retry; others propagate

        Returns:
            The operation's result

        Raises:
            The last error once ``max_attempts`` attempts have failed
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await operation()
            except retry_on as e:
                if attempt >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "Attempt %d/%d failed (%s); retrying in %.1fs",
                    attempt,
                    self.max_attempts,
                    e,
                    delay,
                )
                if on_failure is not None:
                    await on_failure(e, attempt)
                if delay > 0:
                    await asyncio.sleep(delay)
        raise RuntimeError("unreachable")
