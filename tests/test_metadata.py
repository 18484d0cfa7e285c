"""Tests for the details and statistics models."""

from appinfo_cli.exceptions import NotFoundOrUnsuccessfulError
from appinfo_cli.models.metadata import AppDetails, FetchResult
from appinfo_cli.models.stats import FetchStats
from appinfo_cli.utils.formatting import format_duration, format_ttl, strip_html

from .conftest import make_details


def test_header_image_falls_back_to_cdn():
    record = AppDetails.model_validate(make_details("440"))

    assert record.header_image_url() == (
        "https://cdn.akamai.steamstatic.com/steam/apps/440/header.jpg"
    )
    assert AppDetails(name="No Id").header_image_url() is None


def test_fetch_result_states():
    record = AppDetails(name="Game")
    error = NotFoundOrUnsuccessfulError("7", "gone")

    assert FetchResult.success("7", record).ok
    failed = FetchResult.failure("7", error)
    assert not failed.ok
    assert failed.error.key == "7"


def test_stats_counters():
    stats = FetchStats()
    stats.record_cache(True)
    stats.record_cache(False)
    stats.record_cache(False)
    stats.record_failure(NotFoundOrUnsuccessfulError("1", "gone"))

    assert stats.cache_hits == 1
    assert stats.cache_misses == 2
    assert round(stats.hit_rate, 2) == 0.33
    assert stats.failures_by_type == {"NotFoundOrUnsuccessfulError": 1}
    assert FetchStats().hit_rate == 0.0


def test_formatting_helpers():
    assert format_duration(3725) == "1h 2m 5s"
    assert format_duration(0) == "0s"
    assert format_ttl(22 * 3600) == "22h"
    assert strip_html("<strong>OS:</strong> Windows<br>Memory: 4 GB") == (
        "OS: Windows\nMemory: 4 GB"
    )
