"""Shared fixtures: an in-memory transport and a configuration without pauses."""

import asyncio
import json
from collections.abc import Awaitable, Callable

import pytest

from appinfo_cli.api.transport import TransportResponse
from appinfo_cli.models.config import MetadataConfig, Priority


def make_details(key: str, **overrides) -> dict:
    data = {
        "name": f"Game {key}",
        "steam_appid": int(key) if key.isdigit() else None,
        "type": "game",
        "header_image": "",
        "pc_requirements": {"minimum": "<strong>OS:</strong> Windows 10"},
    }
    data.update(overrides)
    return data


def envelope(key: str, data: dict | None = None, success: bool = True) -> bytes:
    entry: dict = {"success": success}
    if data is not None:
        entry["data"] = data
    return json.dumps({key: entry}).encode()


def key_from_url(url: str) -> str:
    return url.rsplit("=", 1)[1]


class FakeTransport:
    """Routes every GET to a handler coroutine and records the URLs."""

    def __init__(self, handler: Callable[[str], Awaitable[TransportResponse]]):
        self.handler = handler
        self.calls: list[str] = []
        self.active = 0
        self.peak_active = 0
        self.closed = False

    async def get(self, url: str) -> TransportResponse:
        self.calls.append(url)
        self.active += 1
        self.peak_active = max(self.peak_active, self.active)
        try:
            return await self.handler(url)
        finally:
            self.active -= 1

    async def close(self) -> None:
        self.closed = True

    def keys_requested(self) -> list[str]:
        return [key_from_url(url) for url in self.calls]


class FakeClock:
    """A settable wall clock."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def store_handler(
    missing: frozenset[str] = frozenset(), delay: float = 0.0
) -> Callable[[str], Awaitable[TransportResponse]]:
    """Succeeds for every key except ``missing`` ones, which are reported unsuccessful."""

    async def handler(url: str) -> TransportResponse:
        key = key_from_url(url)
        if delay:
            await asyncio.sleep(delay)
        if key in missing:
            return TransportResponse(200, envelope(key, success=False))
        return TransportResponse(200, envelope(key, make_details(key)))

    return handler


@pytest.fixture
def fast_config(tmp_path) -> MetadataConfig:
    zero = {p: 0 for p in Priority}
    return MetadataConfig(
        base_delay_ms=zero,
        batch_pause_ms=zero,
        chunk_pause_ms=0,
        request_timeout_s=1.0,
        call_timeout_s=1.0,
        cache_dir=str(tmp_path / "cache"),
    )
