"""
Batch metadata fetching for large key lists.
Splits keys into memory-bounded chunks and priority-sized sub-batches, and
fetches each sub-batch concurrently with pauses in between.
"""

import asyncio
import logging

from appinfo_cli.api.client import StoreAPIClient
from appinfo_cli.models.config import MetadataConfig, Priority
from appinfo_cli.models.metadata import FetchResult

log = logging.getLogger(__name__)


def _partition(items: list[str], size: int) -> list[list[str]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class BatchOrchestrator:
    """
    Drives controlled fan-out of single-key fetches. Results always line up
    with the input keys, one per key, and a failing key never aborts the
    batch.
    """

    def __init__(self, api_client: StoreAPIClient, config: MetadataConfig):
        """
        Args:
            api_client: The StoreAPIClient instance; its gate bounds the
                concurrency of every sub-batch.
            config: Chunk/batch sizes and pauses per priority.
        """
        self.api_client = api_client
        self.config = config

    async def fetch_many(
        self, keys: list[str], priority: Priority = Priority.NORMAL
    ) -> list[FetchResult]:
        """
        Fetches details for every key, preserving input order.

        Args:
            keys: Keys to fetch. Duplicates are fetched once per occurrence.
            priority: Controls chunk size, batch size and pauses.

        Returns:
            One FetchResult per input key, in input order.
        """
        if not keys:
            return []

        chunk_size = self.config.chunk_size[priority]
        batch_size = self.config.batch_size[priority]
        batch_pause = self.config.batch_pause_ms[priority] / 1000
        chunk_pause = self.config.chunk_pause_ms / 1000

        chunks = _partition(list(keys), chunk_size)
        results: list[FetchResult] = []

        log.debug(
            f"Batch fetching {len(keys)} keys in {len(chunks)} chunk(s) "
            f"(priority: {priority.value})"
        )

        for chunk_index, chunk in enumerate(chunks):
            log.debug(
                f"Processing chunk {chunk_index + 1} of {len(chunks)} "
                f"({len(chunk)} keys)"
            )
            for batch in _partition(chunk, batch_size):
                batch_results = await asyncio.gather(
                    *(self.api_client.fetch_result(key, priority) for key in batch)
                )
                results.extend(batch_results)

                if batch_pause > 0 and len(batch) == batch_size:
                    await asyncio.sleep(batch_pause)

            if chunk_index < len(chunks) - 1 and chunk_pause > 0:
                await asyncio.sleep(chunk_pause)

        failed = sum(1 for r in results if not r.ok)
        log.debug(f"Completed batch of {len(keys)} keys ({failed} failed)")
        return results
