import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable

log = logging.getLogger(__name__)


class RateLimiter:
    """Async sliding-window rate limiter.

    At most ``calls_per_minute`` calls are let through in any ``window``
    seconds; further callers sleep until the oldest call ages out. Calls are
    delayed, never dropped.
    """

    def __init__(
        self,
        calls_per_minute: int = 55,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        margin: float = 0.2,
    ) -> None:
        if calls_per_minute < 1:
            raise ValueError(
                f"calls_per_minute must be at least 1, got {calls_per_minute}"
            )
        self.limit = calls_per_minute
        self.window = window
        self._clock = clock
        self._sleep = sleep
        self._margin = margin
        self._lock = asyncio.Lock()
        self._stamps: deque[float] = deque()

    def _prune(self, now: float) -> None:
        while self._stamps and now - self._stamps[0] > self.window:
            self._stamps.popleft()

    @property
    def remaining(self) -> int:
        self._prune(self._clock())
        return max(self.limit - len(self._stamps), 0)

    async def wait(self) -> None:
        async with self._lock:
            while True:
                now = self._clock()
                self._prune(now)
                if len(self._stamps) < self.limit:
                    break
                delay = self.window - (now - self._stamps[0]) + self._margin
                log.info("Rate limit reached, waiting %.1fs", delay)
                await self._sleep(delay)
            self._stamps.append(self._clock())
