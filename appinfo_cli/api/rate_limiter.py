"""
Provides adaptive pacing for store API calls based on observed response times.
"""

import asyncio
import logging

from appinfo_cli.models.config import MetadataConfig, Priority

log = logging.getLogger(__name__)


class ResponseTimeTracker:
    """
    Rolling window of recent successful call latencies, in seconds.
    """

    def __init__(self, max_samples: int = 100, default_response_time: float = 0.2):
        """
        Args:
            max_samples: Cap on the number of samples kept. When exceeded, the
                oldest half is discarded.
            default_response_time: Average reported before any sample exists.
        """
        self._max_samples = max_samples
        self._default = default_response_time
        self._samples: list[float] = []
        self._lock = asyncio.Lock()

    async def record(self, duration: float) -> None:
        """Appends a sample, pruning the oldest half once over the cap."""
        async with self._lock:
            self._samples.append(duration)
            if len(self._samples) > self._max_samples:
                del self._samples[: self._max_samples // 2]

    async def average(self) -> float:
        async with self._lock:
            if not self._samples:
                return self._default
            return sum(self._samples) / len(self._samples)

    def __len__(self) -> int:
        return len(self._samples)


class AdaptivePacer:
    """
    Computes the delay before each call from its priority and the recent
    average response time. Three coarse tiers, no smoothing.
    """

    def __init__(self, tracker: ResponseTimeTracker, config: MetadataConfig):
        self._tracker = tracker
        self._config = config

    @property
    def tracker(self) -> ResponseTimeTracker:
        return self._tracker

    def factor_for(self, average: float) -> float:
        """Maps an average response time (seconds) to a delay multiplier."""
        average_ms = average * 1000
        if average_ms >= self._config.slow_latency_ms:
            return self._config.slow_factor
        if average_ms >= self._config.moderate_latency_ms:
            return self._config.moderate_factor
        return 1.0

    async def delay_for(self, priority: Priority) -> float:
        """Returns the pacing delay for a call, in seconds."""
        average = await self._tracker.average()
        base_ms = self._config.base_delay_ms[priority]
        return base_ms * self.factor_for(average) / 1000

    async def wait(self, priority: Priority) -> float:
        """Sleeps for the current pacing delay and returns it."""
        delay = await self.delay_for(priority)
        if delay > 0:
            await asyncio.sleep(delay)
        return delay
