"""Tests for single-key fetches and outcome classification."""

import asyncio
import json

import pytest

from appinfo_cli.api.client import StoreAPIClient
from appinfo_cli.api.transport import TransportResponse
from appinfo_cli.exceptions import (
    FetchError,
    FetchTimeoutError,
    HTTPStatusError,
    NotFoundOrUnsuccessfulError,
    ParseError,
    TransportError,
)
from appinfo_cli.models.config import Priority

from .conftest import FakeTransport, envelope, make_details, store_handler


def _responding(status: int, body: bytes):
    async def handler(url):
        return TransportResponse(status, body)

    return handler


@pytest.mark.asyncio
async def test_fetch_one_returns_record_and_records_latency(fast_config):
    transport = FakeTransport(store_handler())
    client = StoreAPIClient(transport, fast_config)

    record = await client.fetch_one("440", Priority.HIGH)

    assert record.name == "Game 440"
    assert record.steam_appid == 440
    assert transport.calls == [
        "https://store.steampowered.com/api/appdetails?appids=440"
    ]
    assert len(client.tracker) == 1
    assert client.gate.in_flight == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        json.dumps({"999": {"success": True, "data": {"name": "Other"}}}).encode(),
        envelope("440", success=False),
        envelope("440", data=None, success=True),
        envelope("440", data={}, success=True),
    ],
    ids=["key-absent", "success-false", "no-data", "empty-data"],
)
async def test_unusable_entries_are_not_found(fast_config, body):
    client = StoreAPIClient(FakeTransport(_responding(200, body)), fast_config)

    with pytest.raises(NotFoundOrUnsuccessfulError) as excinfo:
        await client.fetch_one("440")

    assert excinfo.value.key == "440"
    assert len(client.tracker) == 0


@pytest.mark.asyncio
async def test_malformed_json_is_parse_error(fast_config):
    client = StoreAPIClient(FakeTransport(_responding(200, b"<html>")), fast_config)

    with pytest.raises(ParseError):
        await client.fetch_one("440")
    assert len(client.tracker) == 0


@pytest.mark.asyncio
async def test_invalid_payload_is_parse_error(fast_config):
    body = envelope("440", data={"developers": "not a list"})
    client = StoreAPIClient(FakeTransport(_responding(200, body)), fast_config)

    with pytest.raises(ParseError):
        await client.fetch_one("440")


@pytest.mark.asyncio
async def test_non_success_status_is_transport_error(fast_config):
    client = StoreAPIClient(FakeTransport(_responding(503, b"")), fast_config)

    with pytest.raises(HTTPStatusError) as excinfo:
        await client.fetch_one("440")

    assert isinstance(excinfo.value, TransportError)
    assert excinfo.value.status == 503


@pytest.mark.asyncio
async def test_connection_failure_is_transport_error(fast_config):
    async def handler(url):
        raise ConnectionError("connection refused")

    client = StoreAPIClient(FakeTransport(handler), fast_config)

    with pytest.raises(TransportError):
        await client.fetch_one("440")
    assert client.gate.in_flight == 0


@pytest.mark.asyncio
async def test_outer_timeout_releases_permit(fast_config):
    async def hangs(url):
        await asyncio.sleep(10)

    fast_config.request_timeout_s = 0.05
    fast_config.call_timeout_s = 0.05
    client = StoreAPIClient(FakeTransport(hangs), fast_config)

    with pytest.raises(FetchTimeoutError):
        await client.fetch_one("440")

    assert client.gate.in_flight == 0
    assert len(client.tracker) == 0


@pytest.mark.asyncio
async def test_fetch_result_captures_errors(fast_config):
    client = StoreAPIClient(
        FakeTransport(store_handler(missing=frozenset({"30"}))), fast_config
    )

    ok = await client.fetch_result("10")
    failed = await client.fetch_result("30")

    assert ok.ok and ok.record.name == "Game 10"
    assert not failed.ok
    assert isinstance(failed.error, NotFoundOrUnsuccessfulError)


@pytest.mark.asyncio
async def test_empty_requirements_list_is_normalized(fast_config):
    body = envelope("440", data=make_details("440", pc_requirements=[]))
    client = StoreAPIClient(FakeTransport(_responding(200, body)), fast_config)

    record = await client.fetch_one("440")

    assert record.pc_requirements is None
    assert not record.has_requirements


@pytest.fixture
def recorded_sleeps(monkeypatch):
    """Replaces asyncio.sleep with a recorder that does not actually wait."""
    real_sleep = asyncio.sleep
    delays = []

    async def fake_sleep(delay, *args, **kwargs):
        delays.append(delay)
        await real_sleep(0)

    monkeypatch.setattr("appinfo_cli.api.rate_limiter.asyncio.sleep", fake_sleep)
    return delays


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "priority, expected",
    [(Priority.HIGH, 0.05), (Priority.NORMAL, 0.15), (Priority.BACKGROUND, 0.2)],
)
async def test_fetch_waits_for_priority_delay(
    fast_config, recorded_sleeps, priority, expected
):
    fast_config.base_delay_ms = {
        Priority.HIGH: 50,
        Priority.NORMAL: 150,
        Priority.BACKGROUND: 200,
    }
    client = StoreAPIClient(FakeTransport(store_handler()), fast_config)

    await client.fetch_one("440", priority)

    assert recorded_sleeps == [pytest.approx(expected)]


@pytest.mark.asyncio
async def test_slow_responses_stretch_the_delay(fast_config, recorded_sleeps):
    fast_config.base_delay_ms = {
        Priority.HIGH: 50,
        Priority.NORMAL: 150,
        Priority.BACKGROUND: 200,
    }
    client = StoreAPIClient(FakeTransport(store_handler()), fast_config)
    await client.tracker.record(1.2)

    await client.fetch_one("440", Priority.NORMAL)

    assert recorded_sleeps == [pytest.approx(0.3)]


def test_key_is_escaped_in_the_url(fast_config):
    client = StoreAPIClient(FakeTransport(store_handler()), fast_config)

    assert client.details_url("440") == (
        "https://store.steampowered.com/api/appdetails?appids=440"
    )
    assert client.details_url("a&cc=us#x") == (
        "https://store.steampowered.com/api/appdetails?appids=a%26cc%3Dus%23x"
    )


@pytest.mark.asyncio
async def test_fetch_result_wraps_unexpected_errors(fast_config):
    async def broken(url):
        raise RuntimeError("transport bug")

    client = StoreAPIClient(FakeTransport(broken), fast_config)

    result = await client.fetch_result("440")

    assert not result.ok
    assert type(result.error) is FetchError
    assert result.error.key == "440"
    assert client.gate.in_flight == 0
