"""
Rate Limiter — Fixed minimum spacing between sequential REST requests.
Spacing is measured from the completion of the previous request.
"""

from __future__ import annotations
import asyncio
import time
from typing import Awaitable, Callable, Optional
import logging

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Gates outbound requests to at most one per `min_interval` seconds.
    Not safe for concurrent callers; fetching is strictly sequential.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if min_interval < 0:
            raise ValueError(f"min_interval must be >= 0, got {min_interval}")
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last_release: Optional[float] = None

    async def wait(self):
        """Suspend until the next request may be issued."""
        if self._last_release is not None:
            delay = self._last_release + self.min_interval - self._clock()
            if delay > 0:
                logger.debug(f"[RATE] Sleeping {delay * 1000:.0f}ms")
                await self._sleep(delay)
        self._last_release = self._clock()

    def mark_done(self):
        """Record completion of the request released by the last wait()."""
        self._last_release = self._clock()

    async def __aenter__(self) -> "RateLimiter":
        await self.wait()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.mark_done()
