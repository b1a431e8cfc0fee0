"""Tests for the viewport policy."""

from hypothesis import given
from hypothesis import strategies as st

from kcuchart.chart import ViewportController, ViewportPlan, VisibleRange


class TestBulkLoad:
    """
    **Feature: kcu-chart, Property 16: Bulk Load Shows Recent Bars**

    *For any* bar count, a bulk load fits content and then shows at most the
    last 200 bars.
    """

    def test_large_load_shows_last_200(self):
        plan = ViewportController().on_bulk_load(1000)

        assert plan.fit_content
        assert plan.visible_range == VisibleRange(start=800, end=999)

    def test_small_load_shows_everything(self):
        plan = ViewportController().on_bulk_load(50)

        assert plan.visible_range == VisibleRange(start=0, end=49)

    def test_empty_load_is_noop(self):
        assert ViewportController().on_bulk_load(0).is_noop

    @given(st.integers(min_value=1, max_value=100_000))
    def test_range_is_clamped(self, bars: int):
        visible = ViewportController().on_bulk_load(bars).visible_range

        assert visible.end == bars - 1
        assert 0 <= visible.start <= visible.end
        assert visible.end - visible.start + 1 == min(200, bars)


class TestAppend:
    def test_append_leaves_viewport_alone(self):
        assert ViewportController().on_append(300) == ViewportPlan()

    def test_scroll_to_realtime(self):
        plan = ViewportController().on_append(300, scroll_to_realtime=True)

        assert not plan.fit_content
        assert plan.visible_range == VisibleRange(start=100, end=299)

    def test_follow_mode(self):
        plan = ViewportController(visible_bars=50, follow=True).on_append(300)

        assert plan.visible_range == VisibleRange(start=250, end=299)

    def test_set_visible_bars(self):
        controller = ViewportController()
        controller.set_visible_bars(0)

        assert controller.visible_bars == 1
        assert controller.recent_range(10) == VisibleRange(start=9, end=9)

    def test_recent_range_override(self):
        assert ViewportController().recent_range(10, bars=3) == VisibleRange(start=7, end=9)
        assert ViewportController().recent_range(0) is None
