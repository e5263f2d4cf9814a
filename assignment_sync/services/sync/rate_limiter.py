"""
Minimum-interval throttling for remote store writes.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable


logger = logging.getLogger(__name__)


@dataclass
class ThrottleMetrics:
    """Counters for throttling behavior."""
    total_requests: int = 0
    delayed_requests: int = 0
    total_delay: float = 0.0

    def record_request(self, delay: float = 0.0):
        self.total_requests += 1
        if delay > 0:
            self.delayed_requests += 1
            self.total_delay += delay


class MinIntervalRateLimiter:
    """
    Single-token limiter: consecutive ``acquire`` calls are spaced at least
    ``min_interval_ms`` apart, measured from the wall-clock time the previous
    call was let through.
    """

    def __init__(
        self,
        min_interval_ms: int,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = min_interval_ms / 1000.0
        self.clock = clock
        self.sleep = sleep
        self.last_request_time = 0.0
        self.metrics = ThrottleMetrics()

    async def acquire(self) -> float:
        """Wait until the next call is allowed. Returns the delay applied."""
        now = self.clock()
        time_since_last = now - self.last_request_time
        delay = 0.0

        if time_since_last < self.min_interval:
            delay = self.min_interval - time_since_last
            logger.debug(f"Throttling remote store write: delay={delay:.3f}s")
            await self.sleep(delay)

        self.last_request_time = self.clock()
        self.metrics.record_request(delay)
        return delay
