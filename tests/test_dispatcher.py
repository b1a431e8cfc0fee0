"""Tests for the live update dispatcher."""

import math

import pytest

from kcuchart.chart import CandleStore, Diagnostics, LatencyStats, LiveUpdateDispatcher, merge_tick
from kcuchart.indicators import IndicatorEngine
from kcuchart.models import Candle

T0 = 1_709_908_200


def bar(time: int, open=100.0, high=101.0, low=99.0, close=100.5, volume=10.0) -> Candle:
    return Candle(time=time, open=open, high=high, low=low, close=close, volume=volume)


@pytest.fixture
def dispatcher():
    return LiveUpdateDispatcher(CandleStore(), IndicatorEngine(ema_periods=(2, 3), sma_period=None))


class TestMergeTick:
    def test_widens_range_and_takes_close(self):
        merged = merge_tick(bar(T0), bar(T0, open=50.0, high=103.0, low=99.5, close=102.0, volume=25.0))

        assert merged.open == 100.0
        assert merged.high == 103.0
        assert merged.low == 99.0
        assert merged.close == 102.0
        assert merged.volume == 25.0

    def test_keeps_volume_when_tick_has_none(self):
        merged = merge_tick(bar(T0, volume=40.0), bar(T0, volume=None))
        assert merged.volume == 40.0


class TestRouting:
    """
    **Feature: kcu-chart, Property 10: Tick Routing**

    *For any* tick, an equal timestamp updates the building bar, a later
    timestamp appends, and an earlier timestamp is dropped.
    """

    def test_first_tick_appends(self, dispatcher: LiveUpdateDispatcher):
        update = dispatcher.on_tick(bar(T0))

        assert update.kind == "append"
        assert dispatcher.building_time == T0

    def test_same_time_updates(self, dispatcher: LiveUpdateDispatcher):
        dispatcher.on_tick(bar(T0))
        update = dispatcher.on_tick(bar(T0, high=105.0, close=104.0))

        assert update.kind == "update"
        assert len(dispatcher.store) == 1
        assert dispatcher.store.last().high == 105.0
        assert dispatcher.store.last().close == 104.0

    def test_later_time_appends(self, dispatcher: LiveUpdateDispatcher):
        dispatcher.on_tick(bar(T0))
        update = dispatcher.on_tick(bar(T0 + 60))

        assert update.kind == "append"
        assert len(dispatcher.store) == 2
        assert len(dispatcher.engine) == 2

    def test_stale_tick_is_dropped(self, dispatcher: LiveUpdateDispatcher):
        dispatcher.on_tick(bar(T0 + 60))

        assert dispatcher.on_tick(bar(T0)) is None
        assert dispatcher.diagnostics.drops["stale tick"] == 1
        assert len(dispatcher.store) == 1

    def test_millisecond_tick(self, dispatcher: LiveUpdateDispatcher):
        dispatcher.on_tick(bar(T0))
        update = dispatcher.on_tick({"t": T0 * 1000, "o": 1, "h": 102, "l": 99, "c": 101, "v": 5})

        assert update.kind == "update"
        assert update.candle.time == T0

    def test_update_recomputes_last_values(self, dispatcher: LiveUpdateDispatcher):
        dispatcher.on_tick(bar(T0, close=10.0, high=10.0, low=10.0, open=10.0))
        dispatcher.on_tick(bar(T0 + 60, close=20.0, high=20.0, low=20.0, open=20.0))
        first = dispatcher.on_tick(bar(T0 + 60, close=30.0, high=30.0, low=20.0, open=20.0))

        # EMA(2) seeds at index 1 with the mean of the two closes
        assert math.isclose(first.values["ema2"], 20.0)
        assert dispatcher.engine.values("ema2") == [None, 20.0]


class TestMalformedTicks:
    """
    **Feature: kcu-chart, Property 11: Bad Ticks Never Raise**
    """

    def test_malformed_mapping(self, dispatcher: LiveUpdateDispatcher):
        assert dispatcher.on_tick({"time": T0, "open": "abc"}) is None
        assert dispatcher.diagnostics.drops["malformed tick"] == 1

    def test_non_mapping(self, dispatcher: LiveUpdateDispatcher):
        assert dispatcher.on_tick(None) is None
        assert dispatcher.diagnostics.drops["malformed tick"] == 1

    @pytest.mark.parametrize("close", [0.0, -1.0, float("nan"), float("inf")])
    def test_invalid_price(self, dispatcher: LiveUpdateDispatcher, close: float):
        assert dispatcher.on_tick(bar(T0, close=close)) is None
        assert dispatcher.diagnostics.drops["invalid price"] == 1
        assert len(dispatcher.store) == 0

    def test_time_without_calendar_date(self, dispatcher: LiveUpdateDispatcher):
        """Such a tick must not reach the store or the session VWAP."""
        dispatcher.on_tick(bar(T0))

        assert dispatcher.on_tick(bar(300_000_000_000)) is None
        assert dispatcher.diagnostics.drops["invalid time"] == 1
        assert len(dispatcher.store) == len(dispatcher.engine) == 1

        update = dispatcher.on_tick(bar(T0 + 60))
        assert update.kind == "append"
        assert len(dispatcher.store) == len(dispatcher.engine) == 2

    def test_drop_callback(self):
        seen = []
        diagnostics = Diagnostics(on_drop=lambda reason, item: seen.append(reason))
        dispatcher = LiveUpdateDispatcher(CandleStore(), IndicatorEngine(), diagnostics=diagnostics)

        dispatcher.on_tick(bar(T0, low=-5.0))

        assert seen == ["invalid price"]
        assert diagnostics.total_dropped == 1


class TestLatency:
    def test_reports_elapsed_ms(self):
        ticks = iter([1.0, 1.002])
        stats = LatencyStats()
        dispatcher = LiveUpdateDispatcher(
            CandleStore(), IndicatorEngine(), on_latency=stats, clock=lambda: next(ticks)
        )

        update = dispatcher.on_tick(bar(T0))

        assert math.isclose(update.elapsed_ms, 2.0)
        assert stats.samples == [update.elapsed_ms]

    def test_latency_stats(self):
        stats = LatencyStats()
        for sample in [1.0, 2.0, 3.0, 4.0, 100.0]:
            stats(sample)

        assert stats.count == 5
        assert stats.mean == 22.0
        assert stats.max == 100.0
        assert stats.percentile(50) == 3.0
        assert stats.percentile(95) == 100.0

    def test_empty_latency_stats(self):
        stats = LatencyStats()

        assert stats.mean == 0.0
        assert stats.percentile(99) == 0.0
