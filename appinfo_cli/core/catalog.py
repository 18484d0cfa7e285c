"""
Searchable catalog of every application listed by the store, cached on disk.
"""

import asyncio
import json
import logging
import math
import os
import time
from collections.abc import Callable
from contextlib import suppress
from pathlib import Path

import aiofiles
from pydantic import ValidationError

from appinfo_cli.api.transport import HttpTransport
from appinfo_cli.exceptions import CatalogError
from appinfo_cli.models.config import MetadataConfig
from appinfo_cli.models.metadata import CatalogEntry, GameInfo, SearchResults

log = logging.getLogger(__name__)

CATALOG_FILENAME = "applist.json"

# Terms that mark an explicit search for non-game content
NON_GAME_QUERY_TERMS = frozenset(
    ["dlc", "soundtrack", "demo", "pack", "artbook", "trailer", "movie", "beta", "pass"]
)

NON_GAME_KEYWORDS = (
    "dlc", "soundtrack", "demo", "pack", "sdk", "artbook", "trailer", "movie",
    "beta", "ost", "original sound", "wallpaper", "art book", "season pass",
    "bonus content", "uncut", "spin-off", "spinoff", "costume", "hd",
    "technique", "sneakers", "pre-purchase", "pre-order", "pre-orders",
    "expansion", "upgrade", "additional", "perks", "gesture", "guide", "manual",
    "jingle", "ce", "playtest", "special weapon", "danbo head", "making weapon",
    "outfit", "dress", "bonus stamp", "add-on", "debundle", "the great ninja war",
    "training set", "cd key", "key", "code", "gift", "gift code", "gift card",
    "mac", "activation", "uplay activation", "ubisoft activation", "deluxe",
    "(sp)", "fields of elysium",
)  # fmt: skip


class AppCatalog:
    """
    Holds the full application list in memory. The list is loaded from a
    JSON cache when fresh, otherwise downloaded and cached again.
    """

    def __init__(
        self,
        transport: HttpTransport,
        config: MetadataConfig,
        clock: Callable[[], float] = time.time,
    ):
        self._transport = transport
        self._config = config
        self._clock = clock
        self._apps: list[CatalogEntry] = []
        self._loaded = False
        self._lock = asyncio.Lock()
        self.cache_path = Path(config.cache_dir) / CATALOG_FILENAME

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    def __len__(self) -> int:
        return len(self._apps)

    async def load_or_refresh(self) -> None:
        """
        Ensures the catalog is in memory.

        Raises:
            CatalogError: Neither the cache nor the store provided a list.
        """
        async with self._lock:
            if self._loaded:
                return

            apps = await self._load_from_cache()
            if apps is None:
                log.info("Fetching application list from the store...")
                apps = await self._fetch_from_store()
                try:
                    await self._save_to_cache(apps)
                except OSError as e:
                    log.warning(f"Failed to save application list to cache: {e}")
                log.info(f"Loaded {len(apps)} applications from the store")

            self._apps = apps
            self._loaded = True

    async def _load_from_cache(self) -> list[CatalogEntry] | None:
        if not self.cache_path.is_file():
            return None
        try:
            async with aiofiles.open(self.cache_path, encoding="utf-8") as f:
                payload = json.loads(await f.read())
            age = self._clock() - float(payload["timestamp"])
            if age >= self._config.catalog_ttl_hours * 3600:
                log.debug("Application list cache is outdated.")
                return None
            apps = [CatalogEntry.model_validate(a) for a in payload["apps"]]
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            log.debug(f"Application list cache unusable: {e}")
            return None
        log.debug(f"Loaded {len(apps)} applications from cache.")
        return apps

    async def _save_to_cache(self, apps: list[CatalogEntry]) -> None:
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "timestamp": self._clock(),
            "apps": [app.model_dump() for app in apps],
        }
        temp_path = self.cache_path.with_suffix(".json.tmp")
        try:
            async with aiofiles.open(temp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(payload))
            os.replace(temp_path, self.cache_path)
        except OSError:
            with suppress(OSError):
                temp_path.unlink()
            raise

    async def _fetch_from_store(self) -> list[CatalogEntry]:
        url = self._config.applist_url
        try:
            response = await asyncio.wait_for(
                self._transport.get(url), timeout=self._config.call_timeout_s
            )
        except asyncio.TimeoutError as e:
            raise CatalogError("Timed out fetching the application list.") from e
        except OSError as e:
            raise CatalogError(f"Failed to connect to the store: {e}") from e

        if not response.is_success:
            raise CatalogError(f"Store returned error: {response.status}")

        try:
            payload = json.loads(response.body)
            return [CatalogEntry.model_validate(a) for a in payload["applist"]["apps"]]
        except (json.JSONDecodeError, KeyError, TypeError, ValidationError) as e:
            raise CatalogError(f"Failed to parse application list: {e}") from e

    def search(self, query: str, page: int = 1, per_page: int = 20) -> SearchResults:
        """
        Finds applications whose names contain any comma-separated term.

        A single numeric term is looked up as an app id first. Entries that
        look like DLC, soundtracks and similar extras are hidden unless the
        query itself asks for such content.
        """
        per_page = max(1, per_page)
        terms = [t.strip().lower() for t in query.split(",") if t.strip()]
        if not terms:
            return SearchResults()

        if len(terms) == 1 and terms[0].isdigit():
            app_id = int(terms[0])
            for app in self._apps:
                if app.appid == app_id:
                    return SearchResults(
                        games=[GameInfo.from_entry(app)],
                        total=1,
                        query=query,
                    )

        wants_non_game = any(term in NON_GAME_QUERY_TERMS for term in terms)

        matches = []
        for app in self._apps:
            name = app.name.lower()
            if not any(term in name for term in terms):
                continue
            if not wants_non_game and any(kw in name for kw in NON_GAME_KEYWORDS):
                continue
            matches.append(app)

        total = len(matches)
        total_pages = max(1, math.ceil(total / per_page))
        current_page = min(max(page, 1), total_pages)
        start = (current_page - 1) * per_page

        return SearchResults(
            games=[GameInfo.from_entry(a) for a in matches[start : start + per_page]],
            total=total,
            page=current_page,
            total_pages=total_pages,
            query=query,
        )

    def get_by_app_id(self, app_id: str) -> GameInfo | None:
        if not app_id.isdigit():
            return None
        wanted = int(app_id)
        for app in self._apps:
            if app.appid == wanted:
                return GameInfo.from_entry(app)
        return None
