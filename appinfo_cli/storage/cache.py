"""
A file-based JSON cache for store details with staggered, per-key expiry.
Enhanced with statistics tracking for cache hits and misses.
"""

import asyncio
import hashlib
import json
import logging
import os
import re
import tempfile
import time
from collections.abc import Callable
from contextlib import suppress
from pathlib import Path

from pydantic import ValidationError

from appinfo_cli.exceptions import CacheIOError
from appinfo_cli.models.metadata import AppDetails

log = logging.getLogger(__name__)

_SAFE_KEY_REGEX = re.compile(r"^[A-Za-z0-9._-]+$")


class DiskCacheStore:
    """
    Stores one JSON file per key. An entry expires after a base window plus a
    jitter derived from the key, so records cached together do not all
    expire together.
    """

    def __init__(
        self,
        cache_dir_path: Path,
        ttl_hours: int = 20,
        ttl_spread_hours: int = 8,
        stats_callback: Callable[[bool], None] | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initializes the cache store.

        Args:
            cache_dir_path: The directory where cache files will be stored.
            ttl_hours: Base lifetime of an entry.
            ttl_spread_hours: Size of the jitter band; each key gets between 0
                and ``ttl_spread_hours - 1`` extra hours.
            stats_callback: Optional callback to report cache hits (True) or
                misses (False).
            clock: Wall-clock source, replaceable in tests.
        """
        self.cache_dir = Path(cache_dir_path)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            # Lookups will miss and writes will raise CacheIOError
            log.warning(f"[yellow]Cache directory unavailable:[/yellow] {e}")
        self.ttl_hours = ttl_hours
        self.ttl_spread_hours = ttl_spread_hours
        self.stats_callback = stats_callback
        self._clock = clock
        self._cleanup_task: asyncio.Task | None = None

    def ttl_seconds(self, key: str) -> int:
        """Lifetime of ``key``'s entry: base hours plus a key-derived offset."""
        extra_hours = 0
        if self.ttl_spread_hours > 0:
            extra_hours = sum(ord(c) for c in key) % self.ttl_spread_hours
        return (self.ttl_hours + extra_hours) * 3600

    def _get_cache_path(self, key: str) -> Path:
        """Uses the key as the filename when safe, otherwise its digest."""
        if _SAFE_KEY_REGEX.match(key) and key not in (".", ".."):
            return self.cache_dir / f"{key}.json"
        hashed_key = hashlib.md5(key.encode("utf-8")).hexdigest()  # noqa: S324
        return self.cache_dir / f"{hashed_key}.json"

    def _report(self, is_hit: bool) -> None:
        if self.stats_callback:
            self.stats_callback(is_hit)

    def _is_expired(self, key: str, timestamp: float) -> bool:
        return self._clock() - timestamp >= self.ttl_seconds(key)

    def load(self, key: str) -> AppDetails | None:
        """
        Returns the cached record for ``key``, or None if absent or expired.

        Raises:
            CacheIOError: The entry exists but cannot be read or decoded.
        """
        cache_path = self._get_cache_path(key)
        if not cache_path.is_file():
            return None

        try:
            with open(cache_path, encoding="utf-8") as f:
                payload = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            raise CacheIOError(f"Cache read failed for key '{key}': {e}") from e

        if not isinstance(payload, dict) or "timestamp" not in payload:
            raise CacheIOError(f"Cache entry for key '{key}' is malformed.")

        try:
            timestamp = float(payload["timestamp"])
        except (TypeError, ValueError) as e:
            raise CacheIOError(f"Cache entry for key '{key}' has a bad timestamp.") from e

        if payload.get("key") != key:
            log.debug(f"Cache file for '{key}' belongs to another key, ignoring.")
            return None

        if self._is_expired(key, timestamp):
            return None

        try:
            return AppDetails.model_validate(payload.get("value"))
        except ValidationError as e:
            raise CacheIOError(f"Cache entry for key '{key}' is invalid: {e}") from e

    def get(self, key: str) -> AppDetails | None:
        """
        Retrieves a record from the cache. Returns None if the key is not
        found, expired, or unreadable.
        """
        try:
            record = self.load(key)
        except CacheIOError as e:
            log.debug(str(e))
            record = None
        self._report(record is not None)
        return record

    def is_fresh(self, key: str) -> bool:
        """Whether an unexpired, readable entry exists, without touching stats."""
        try:
            return self.load(key) is not None
        except CacheIOError:
            return False

    def put(self, key: str, record: AppDetails) -> None:
        """
        Writes ``record`` for ``key`` via a temp file and an atomic replace,
        so readers never see a partial file and a failed write leaves the
        previous entry intact.

        Raises:
            CacheIOError: Serialization or the disk write failed.
        """
        cache_path = self._get_cache_path(key)
        try:
            payload = {
                "key": key,
                "timestamp": self._clock(),
                "value": record.model_dump(mode="json"),
            }
            serialized_payload = json.dumps(payload, indent=2)
        except (TypeError, ValueError) as e:
            raise CacheIOError(f"Cache serialization failed for key '{key}': {e}") from e

        temp_path = None
        try:
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{cache_path.stem}_", suffix=".tmp", dir=self.cache_dir
            )
            temp_path = Path(temp_name)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(serialized_payload)
            os.replace(temp_path, cache_path)
        except OSError as e:
            if temp_path is not None:
                with suppress(OSError):
                    temp_path.unlink()
            raise CacheIOError(f"Cache write failed for key '{key}': {e}") from e
        log.debug(f"Cached store details for {key}")

    def invalidate(self, key: str) -> bool:
        """Deletes the entry for ``key``. Returns True if a file was removed."""
        cache_path = self._get_cache_path(key)
        try:
            cache_path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheIOError(f"Failed to remove cache entry for '{key}': {e}") from e
        log.debug(f"Cleared cache for {key}")
        return True

    def cleanup_expired(self) -> int:
        """Scans the cache directory and removes expired or unreadable entries."""
        cleaned_count = 0
        for cache_file in self.cache_dir.glob("*.json"):
            try:
                with open(cache_file, encoding="utf-8") as f:
                    payload = json.load(f)
                key = str(payload["key"])
                expired = self._is_expired(key, float(payload["timestamp"]))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError, OSError):
                expired = True
            if not expired:
                continue
            try:
                cache_file.unlink()
                cleaned_count += 1
            except OSError as e:
                log.warning(
                    f"Failed to remove expired cache file {cache_file.name}: {e}"
                )
        if cleaned_count > 0:
            log.debug(f"Cache cleanup: removed {cleaned_count} expired entries.")
        return cleaned_count

    async def start_background_cleanup(self, interval_s: float = 3600) -> None:
        """Starts the periodic background cleanup task."""
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop(interval_s))
            log.debug("Started cache background cleanup task.")

    async def _cleanup_loop(self, interval_s: float) -> None:
        """Runs the cleanup logic periodically in the background."""
        while True:
            try:
                await asyncio.to_thread(self.cleanup_expired)
                await asyncio.sleep(interval_s)
            except asyncio.CancelledError:
                log.debug("Cache cleanup task cancelled.")
                break
            except Exception as e:
                log.warning(f"Error in cache cleanup loop: {e}")
                await asyncio.sleep(interval_s)

    async def stop_background_cleanup(self) -> None:
        """Stops the background cleanup task gracefully."""
        if self._cleanup_task and not self._cleanup_task.done():
            self._cleanup_task.cancel()
            with suppress(asyncio.CancelledError):
                await self._cleanup_task
            log.debug("Stopped cache background cleanup task.")

    def entry_count(self) -> int:
        return sum(1 for _ in self.cache_dir.glob("*.json"))

    def clear(self) -> bool:
        """Removes all items from the cache."""
        log.info("Clearing all cache entries...")
        try:
            for cache_file in self.cache_dir.glob("*.json"):
                cache_file.unlink()
            return True
        except OSError as e:
            log.error(f"Failed to clear cache: {e}")
            return False
