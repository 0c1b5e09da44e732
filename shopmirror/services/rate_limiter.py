"""Minimum-interval gate for outbound Shopify requests."""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Serializes callers so that consecutive releases are at least `interval` apart.

    There is no burst allowance and no backoff on upstream throttling; the
    limiter only spaces out request starts. One instance is owned by each
    client and shared by every resource it fetches.
    """

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_release: Optional[float] = None

    async def wait(self) -> None:
        """Block until the caller may issue its request."""
        async with self._lock:
            if self._last_release is not None:
                remaining = self.interval - (self._clock() - self._last_release)
                if remaining > 0:
                    logger.debug(f"Rate limiter sleeping {remaining:.3f}s")
                    await self._sleep(remaining)
            self._last_release = self._clock()

    async def __aenter__(self) -> "RateLimiter":
        await self.wait()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None
