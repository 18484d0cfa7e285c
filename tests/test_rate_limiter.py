"""Tests for the response time tracker and the adaptive pacer."""

import pytest

from appinfo_cli.api.rate_limiter import AdaptivePacer, ResponseTimeTracker
from appinfo_cli.models.config import MetadataConfig, Priority


@pytest.mark.asyncio
async def test_empty_tracker_reports_default_average():
    tracker = ResponseTimeTracker(max_samples=100, default_response_time=0.2)
    assert await tracker.average() == pytest.approx(0.2)
    assert len(tracker) == 0


@pytest.mark.asyncio
async def test_buffer_never_exceeds_cap():
    tracker = ResponseTimeTracker(max_samples=100)
    for i in range(350):
        await tracker.record(i / 1000)
        assert len(tracker) <= 100


@pytest.mark.asyncio
async def test_pruning_drops_the_oldest_half():
    tracker = ResponseTimeTracker(max_samples=100)
    for i in range(101):
        await tracker.record(float(i))

    # Samples 0..49 are gone, 50..100 remain
    assert len(tracker) == 51
    assert await tracker.average() == pytest.approx(75.0)


@pytest.mark.asyncio
async def test_empty_tracker_gives_base_delays():
    config = MetadataConfig()
    pacer = AdaptivePacer(ResponseTimeTracker(), config)

    assert await pacer.delay_for(Priority.HIGH) == pytest.approx(0.05)
    assert await pacer.delay_for(Priority.NORMAL) == pytest.approx(0.15)
    assert await pacer.delay_for(Priority.BACKGROUND) == pytest.approx(0.2)


@pytest.mark.asyncio
async def test_slow_average_doubles_normal_delay():
    tracker = ResponseTimeTracker()
    await tracker.record(1.2)
    pacer = AdaptivePacer(tracker, MetadataConfig())

    assert await pacer.delay_for(Priority.NORMAL) == pytest.approx(0.3)


@pytest.mark.parametrize(
    "average, factor",
    [(0.1, 1.0), (0.499, 1.0), (0.5, 1.5), (0.999, 1.5), (1.0, 2.0), (5.0, 2.0)],
)
def test_factor_tiers(average, factor):
    pacer = AdaptivePacer(ResponseTimeTracker(), MetadataConfig())
    assert pacer.factor_for(average) == factor


@pytest.mark.asyncio
async def test_wait_skips_sleep_for_zero_delay():
    config = MetadataConfig(base_delay_ms={p: 0 for p in Priority})
    pacer = AdaptivePacer(ResponseTimeTracker(), config)
    assert await pacer.wait(Priority.BACKGROUND) == 0
