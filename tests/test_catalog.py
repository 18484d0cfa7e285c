"""Tests for the cached application list and its search."""

import json

import pytest
import pytest_asyncio

from appinfo_cli.api.transport import TransportResponse
from appinfo_cli.core.catalog import AppCatalog
from appinfo_cli.exceptions import CatalogError

from .conftest import FakeClock, FakeTransport

APPS = [
    {"appid": 400, "name": "Portal"},
    {"appid": 620, "name": "Portal 2"},
    {"appid": 323180, "name": "Portal 2 Soundtrack"},
    {"appid": 70, "name": "Half-Life"},
] + [{"appid": 1000 + i, "name": f"Quest {i}"} for i in range(1, 6)]


def applist_handler(apps=APPS):
    async def handler(url):
        return TransportResponse(200, json.dumps({"applist": {"apps": apps}}).encode())

    return handler


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def catalog(fast_config, clock):
    catalog = AppCatalog(FakeTransport(applist_handler()), fast_config, clock=clock)
    await catalog.load_or_refresh()
    return catalog


@pytest.mark.asyncio
async def test_load_fetches_once_and_writes_cache(fast_config, clock):
    transport = FakeTransport(applist_handler())
    catalog = AppCatalog(transport, fast_config, clock=clock)

    await catalog.load_or_refresh()
    await catalog.load_or_refresh()

    assert catalog.is_loaded
    assert len(catalog) == len(APPS)
    assert transport.calls == [fast_config.applist_url]
    assert catalog.cache_path.is_file()


@pytest.mark.asyncio
async def test_fresh_cache_avoids_the_network(fast_config, clock):
    first = AppCatalog(FakeTransport(applist_handler()), fast_config, clock=clock)
    await first.load_or_refresh()

    async def offline(url):
        raise ConnectionError("offline")

    second = AppCatalog(FakeTransport(offline), fast_config, clock=clock)
    await second.load_or_refresh()

    assert len(second) == len(APPS)


@pytest.mark.asyncio
async def test_outdated_cache_is_refetched(fast_config, clock):
    first = AppCatalog(FakeTransport(applist_handler()), fast_config, clock=clock)
    await first.load_or_refresh()
    clock.now += fast_config.catalog_ttl_hours * 3600

    transport = FakeTransport(applist_handler([{"appid": 1, "name": "Only One"}]))
    catalog = AppCatalog(transport, fast_config, clock=clock)
    await catalog.load_or_refresh()

    assert len(catalog) == 1
    assert len(transport.calls) == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "handler_result",
    [
        ConnectionError("refused"),
        TransportResponse(500, b""),
        TransportResponse(200, b'{"applist": {}}'),
        TransportResponse(200, b"not json"),
    ],
    ids=["connection", "status", "shape", "json"],
)
async def test_unavailable_list_raises_catalog_error(fast_config, handler_result):
    async def handler(url):
        if isinstance(handler_result, Exception):
            raise handler_result
        return handler_result

    catalog = AppCatalog(FakeTransport(handler), fast_config)

    with pytest.raises(CatalogError):
        await catalog.load_or_refresh()
    assert not catalog.is_loaded


@pytest.mark.asyncio
async def test_search_by_name_hides_extras(catalog):
    results = catalog.search("portal")

    assert [g.game_name for g in results.games] == ["Portal", "Portal 2"]
    assert results.total == 2
    assert results.total_pages == 1


@pytest.mark.asyncio
async def test_search_for_extras_shows_them(catalog):
    results = catalog.search("portal, soundtrack")

    assert "Portal 2 Soundtrack" in [g.game_name for g in results.games]


@pytest.mark.asyncio
async def test_search_by_app_id(catalog):
    results = catalog.search("620")

    assert results.total == 1
    assert results.games[0].game_name == "Portal 2"
    assert results.games[0].app_id == "620"
    assert catalog.get_by_app_id("70").game_name == "Half-Life"
    assert catalog.get_by_app_id("12345") is None


@pytest.mark.asyncio
async def test_search_pagination(catalog):
    last = catalog.search("quest", page=3, per_page=2)

    assert last.total == 5
    assert last.total_pages == 3
    assert last.page == 3
    assert [g.game_name for g in last.games] == ["Quest 5"]

    clamped = catalog.search("quest", page=99, per_page=2)
    assert clamped.page == 3


@pytest.mark.asyncio
async def test_empty_query(catalog):
    results = catalog.search(" , ")

    assert results.games == []
    assert results.total == 0
