"""
High-level metadata service: consults the disk cache first, routes misses
through the batch orchestrator, and writes fresh results back.
"""

import logging
from pathlib import Path

from appinfo_cli.api.client import StoreAPIClient
from appinfo_cli.api.gate import ConcurrencyGate
from appinfo_cli.api.rate_limiter import ResponseTimeTracker
from appinfo_cli.api.transport import AiohttpTransport, HttpTransport
from appinfo_cli.exceptions import CacheIOError
from appinfo_cli.models.config import MetadataConfig, Priority
from appinfo_cli.models.metadata import AppDetails, FetchResult
from appinfo_cli.models.stats import FetchStats
from appinfo_cli.storage.cache import DiskCacheStore

from .batch import BatchOrchestrator

log = logging.getLogger(__name__)

DETAILS_CACHE_SUBDIR = "app_details"


class MetadataService:
    """
    Owns the long-lived client, cache and batch orchestrator for a session.
    All shared state (the gate and the latency tracker) lives inside the
    client handed in here; nothing is global.
    """

    def __init__(
        self,
        api_client: StoreAPIClient,
        cache: DiskCacheStore,
        config: MetadataConfig,
        stats: FetchStats | None = None,
        refresh_incomplete: bool = False,
    ):
        """
        Args:
            api_client: Client used for every remote call.
            cache: Disk cache consulted before any remote call.
            config: Batching and pacing configuration.
            stats: Session counters; a fresh instance is created if omitted.
            refresh_incomplete: Treat cached records without PC requirements
                as misses.
        """
        self.api_client = api_client
        self.cache = cache
        self.config = config
        self.stats = stats or FetchStats()
        self.refresh_incomplete = refresh_incomplete
        self.orchestrator = BatchOrchestrator(api_client, config)
        if self.cache.stats_callback is None:
            self.cache.stats_callback = self.stats.record_cache

    @classmethod
    def create(
        cls,
        config: MetadataConfig,
        transport: HttpTransport | None = None,
        refresh_incomplete: bool = False,
    ) -> "MetadataService":
        """Builds a service and all of its collaborators from a config."""
        transport = transport or AiohttpTransport(
            request_timeout_s=config.request_timeout_s,
            pool_size=config.max_concurrent_requests * 2,
        )
        gate = ConcurrencyGate(config.max_concurrent_requests)
        tracker = ResponseTimeTracker(
            max_samples=config.response_window,
            default_response_time=config.default_response_time_ms / 1000,
        )
        api_client = StoreAPIClient(transport, config, gate=gate, tracker=tracker)
        stats = FetchStats()
        cache = DiskCacheStore(
            Path(config.cache_dir) / DETAILS_CACHE_SUBDIR,
            ttl_hours=config.cache_ttl_hours,
            ttl_spread_hours=config.cache_ttl_spread_hours,
            stats_callback=stats.record_cache,
        )
        return cls(
            api_client, cache, config, stats=stats, refresh_incomplete=refresh_incomplete
        )

    async def close(self) -> None:
        await self.cache.stop_background_cleanup()
        await self.api_client.close()

    async def __aenter__(self) -> "MetadataService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _cached(self, key: str) -> AppDetails | None:
        record = self.cache.get(key)
        if record is not None and self.refresh_incomplete and not record.has_requirements:
            log.debug(f"Cached details for {key} lack PC requirements, refreshing.")
            return None
        return record

    def _store(self, key: str, record: AppDetails) -> None:
        """Persists a fresh record. A write failure is reported, never raised."""
        try:
            self.cache.put(key, record)
        except CacheIOError as e:
            self.stats.cache_write_failures += 1
            log.warning(f"[yellow]Failed to cache details for {key}:[/yellow] {e}")

    async def _record_fetches(self, results: list[FetchResult]) -> None:
        for result in results:
            if result.ok:
                self.stats.fetched += 1
                self._store(result.key, result.record)
            else:
                self.stats.record_failure(result.error)
        self.stats.average_response_ms = (
            await self.api_client.tracker.average() * 1000
        )

    async def get_one(self, key: str, priority: Priority = Priority.HIGH) -> AppDetails:
        """
        Returns the details for ``key`` from cache or the store.

        Raises:
            FetchError: The key could not be fetched.
        """
        if (record := self._cached(key)) is not None:
            log.debug(f"Loaded details for {key} from cache")
            return record

        result = await self.api_client.fetch_result(key, priority)
        await self._record_fetches([result])
        if not result.ok:
            raise result.error
        return result.record

    async def get_many(
        self, keys: list[str], priority: Priority = Priority.NORMAL
    ) -> list[FetchResult]:
        """
        Returns one result per key in input order, merging cache hits with
        fresh fetches. Keys missing from the cache are fetched once even if
        repeated in the input.
        """
        results: list[FetchResult | None] = [None] * len(keys)
        positions: dict[str, list[int]] = {}
        for index, key in enumerate(keys):
            positions.setdefault(key, []).append(index)

        # Each distinct key is looked up and counted once
        misses: dict[str, list[int]] = {}
        for key, indices in positions.items():
            if (record := self._cached(key)) is not None:
                for index in indices:
                    results[index] = FetchResult.success(key, record)
            else:
                misses[key] = indices

        if misses:
            log.info(f"Fetching {len(misses)} of {len(keys)} keys from the store")
            fetched = await self.orchestrator.fetch_many(list(misses), priority)
            await self._record_fetches(fetched)
            for result in fetched:
                for index in misses[result.key]:
                    results[index] = result

        return results

    def invalidate(self, key: str) -> bool:
        """Removes ``key`` from the cache. Idempotent."""
        return self.cache.invalidate(key)

    async def refresh_expired(
        self, keys: list[str], priority: Priority = Priority.BACKGROUND
    ) -> dict[str, FetchResult]:
        """
        Re-fetches every key without a fresh cache entry and waits for all of
        them. Concurrency stays bounded by the shared gate.

        Returns:
            A mapping of each refreshed key to its outcome. Keys that were
            still fresh are not included.
        """
        stale = [key for key in dict.fromkeys(keys) if not self.cache.is_fresh(key)]
        if not stale:
            log.debug("Nothing to refresh; all cache entries are fresh.")
            return {}

        log.info(f"Refreshing {len(stale)} expired cache entries")
        fetched = await self.orchestrator.fetch_many(stale, priority)
        await self._record_fetches(fetched)
        refreshed = sum(1 for r in fetched if r.ok)
        log.info(f"Cache refresh completed ({refreshed}/{len(stale)} succeeded)")
        return {result.key: result for result in fetched}
