"""
Dataclass for tracking metadata session statistics.
"""

import time
from dataclasses import dataclass, field


@dataclass
class FetchStats:
    """Tracks cache and fetch counters for a metadata session."""

    cache_hits: int = 0
    cache_misses: int = 0
    fetched: int = 0
    failed: int = 0
    cache_write_failures: int = 0
    average_response_ms: float = 0.0
    failures_by_type: dict[str, int] = field(default_factory=dict)
    _start_time: float = field(default=0.0, repr=False)

    def __post_init__(self):
        self._start_time = time.monotonic()

    def record_cache(self, is_hit: bool) -> None:
        """Callback for the cache manager's hit/miss reporting."""
        if is_hit:
            self.cache_hits += 1
        else:
            self.cache_misses += 1

    def record_failure(self, error: Exception) -> None:
        self.failed += 1
        name = type(error).__name__
        self.failures_by_type[name] = self.failures_by_type.get(name, 0) + 1

    @property
    def hit_rate(self) -> float:
        lookups = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups if lookups else 0.0

    @property
    def elapsed_s(self) -> float:
        return time.monotonic() - self._start_time
