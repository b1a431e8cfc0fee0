"""Tests for the in-memory candle store."""

from hypothesis import given, settings
from hypothesis import strategies as st

from kcuchart.chart import CandleStore
from kcuchart.models import Candle


def bar(time: int, close: float = 100.0) -> Candle:
    return Candle(time=time, open=close, high=close + 1, low=close - 1, close=close, volume=10)


class TestCandleStoreAppend:
    """
    **Feature: kcu-chart, Property 9: Store Times Strictly Increase**

    *For any* sequence of appends, stored times are strictly increasing and
    an equal time replaces the last bar.
    """

    def test_newer_time_appends(self):
        store = CandleStore()

        assert store.append(bar(1)) == "appended"
        assert store.append(bar(2)) == "appended"
        assert len(store) == 2

    def test_equal_time_replaces(self):
        store = CandleStore([bar(1), bar(2)])

        assert store.append(bar(2, close=105)) == "replaced"
        assert len(store) == 2
        assert store.last().close == 105

    def test_older_time_is_rejected(self):
        store = CandleStore([bar(5)])

        assert store.append(bar(3)) == "rejected"
        assert [c.time for c in store] == [5]

    @given(st.lists(st.integers(min_value=1, max_value=100), max_size=80))
    @settings(max_examples=100)
    def test_times_strictly_increase(self, times: list[int]):
        store = CandleStore()
        for t in times:
            store.append(bar(t))

        stored = [c.time for c in store]
        assert all(a < b for a, b in zip(stored, stored[1:]))
        if times:
            assert store.last_time() == max(times)


class TestCandleStoreBulk:
    def test_bulk_load_replaces_contents(self):
        store = CandleStore([bar(1)])
        store.bulk_load([bar(10), bar(20)])

        assert [c.time for c in store.candles] == [10, 20]
        assert store[0].time == 10

    def test_bulk_load_does_not_sort(self):
        store = CandleStore()
        store.bulk_load([bar(20), bar(10)])

        assert [c.time for c in store] == [20, 10]

    def test_empty_store(self):
        store = CandleStore()

        assert store.last_time() is None
        assert store.last() is None
        assert store.candles == ()

    def test_clear(self):
        store = CandleStore([bar(1)])
        store.clear()

        assert len(store) == 0
