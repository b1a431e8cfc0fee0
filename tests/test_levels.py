"""Tests for the level registry and level styling."""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from kcuchart.chart import Diagnostics, LevelRegistry
from kcuchart.chart.levels import SECONDS_PER_YEAR
from kcuchart.chart.styles import level_color, level_style, width_for_strength
from kcuchart.models import GammaLevel, PriceLevel

NOW = 1_700_000_000


@pytest.fixture
def registry():
    return LevelRegistry(clock=lambda: NOW)


def support(price: float, **kwargs) -> PriceLevel:
    return PriceLevel(price=price, kind="support", label=f"S {price}", **kwargs)


class TestCapacity:
    """
    **Feature: kcu-chart, Property 12: Level Pools Are Bounded**

    *For any* number of input levels, at most the pool capacity is drawn,
    in input order, and the rest are reported as dropped.
    """

    @given(count=st.integers(min_value=0, max_value=40))
    @settings(max_examples=50)
    def test_truncates_in_input_order(self, count: int):
        registry = LevelRegistry(clock=lambda: NOW)
        levels = [support(100.0 + i) for i in range(count)]

        registry.update(levels)

        drawn = [level.price for level in registry.ordered()]
        assert drawn == [100.0 + i for i in range(min(count, 20))]
        assert registry.diagnostics.drops["level over capacity"] == max(0, count - 20)

    def test_gamma_pool_is_separate(self, registry: LevelRegistry):
        gamma = [GammaLevel(price=100.0 + i, kind="call_wall") for i in range(7)]

        registry.update([support(90.0)], gamma)

        assert len(registry.level_slots) == 20
        assert len(registry.gamma_slots) == 5
        assert sum(slot.active for slot in registry.gamma_slots) == 5
        assert registry.diagnostics.drops["gamma level over capacity"] == 2

    def test_invalid_prices_are_dropped(self, registry: LevelRegistry):
        registry.update([support(0.0), support(float("nan")), support(95.0)])

        assert [level.price for level in registry.ordered()] == [95.0]
        assert registry.diagnostics.drops["invalid level price"] == 2


class TestDiffing:
    """
    **Feature: kcu-chart, Property 13: Only Changed Slots Are Redrawn**
    """

    def test_identical_update_changes_nothing(self, registry: LevelRegistry):
        levels = [support(95.0), support(105.0)]

        assert len(registry.update(levels)) == 2
        assert registry.update(levels) == []

    def test_single_change_touches_one_slot(self, registry: LevelRegistry):
        registry.update([support(95.0), support(105.0)])

        changed = registry.update([support(95.0), support(106.0)])

        assert [(slot.pool, slot.index) for slot in changed] == [("level", 1)]

    def test_shrinking_clears_trailing_slots(self, registry: LevelRegistry):
        registry.update([support(95.0), support(105.0), support(110.0)])

        changed = registry.update([support(95.0)])

        assert [slot.index for slot in changed] == [1, 2]
        assert all(not slot.active for slot in changed)
        assert len(registry.ordered()) == 1

    def test_empty_update_clears_everything(self, registry: LevelRegistry):
        registry.update([support(95.0)], [GammaLevel(price=100.0, kind="zero_gamma")])

        registry.update([], [])

        assert registry.ordered() == []

    def test_release(self, registry: LevelRegistry):
        registry.update([support(95.0)], [GammaLevel(price=100.0, kind="zero_gamma")])

        released = registry.release()

        assert len(released) == 2
        assert registry.ordered() == []
        assert registry.refresh_proximity(100.0) == []


class TestAnchors:
    def test_lines_span_ten_years_each_side(self, registry: LevelRegistry):
        registry.update([support(95.0)])
        level = registry.ordered()[0]

        assert level.start_time == NOW - 10 * SECONDS_PER_YEAR
        assert level.end_time == NOW + 10 * SECONDS_PER_YEAR

    def test_anchor_years_is_configurable(self):
        registry = LevelRegistry(anchor_years=1, clock=lambda: NOW)

        assert registry.end_time - registry.start_time == 2 * SECONDS_PER_YEAR


class TestProximity:
    """
    **Feature: kcu-chart, Property 14: Gamma Proximity**

    *For any* gamma level other than max pain, it is near when within 1%
    of the last price.
    """

    def test_near_within_one_percent(self, registry: LevelRegistry):
        registry.update(
            [],
            [
                GammaLevel(price=100.5, kind="call_wall"),
                GammaLevel(price=102.0, kind="put_wall"),
                GammaLevel(price=100.0, kind="max_pain"),
            ],
            last_price=100.0,
        )

        near = registry.near_levels()

        assert [level.kind for level in near] == ["call_wall"]

    def test_no_price_means_nothing_near(self, registry: LevelRegistry):
        registry.update([], [GammaLevel(price=100.0, kind="zero_gamma")])

        assert registry.near_levels() == []

    def test_refresh_reports_flipped_slots(self, registry: LevelRegistry):
        registry.update(
            [],
            [GammaLevel(price=100.0, kind="zero_gamma"), GammaLevel(price=150.0, kind="call_wall")],
            last_price=120.0,
        )

        changed = registry.refresh_proximity(100.2)

        assert [slot.index for slot in changed] == [0]
        assert changed[0].level.near
        assert registry.refresh_proximity(100.3) == []

    def test_regular_levels_are_never_near(self, registry: LevelRegistry):
        registry.update([support(100.0)], last_price=100.0)

        assert registry.near_levels() == []

    def test_custom_threshold(self):
        registry = LevelRegistry(near_threshold=0.05, clock=lambda: NOW)
        registry.update([], [GammaLevel(price=104.0, kind="put_wall")], last_price=100.0)

        assert len(registry.near_levels()) == 1


class TestStyles:
    """
    **Feature: kcu-chart, Property 15: Level Styling**
    """

    @pytest.mark.parametrize(
        "strength,width",
        [(0, 1), (20, 2), (50, 3), (80, 3), (100, 4)],
    )
    def test_width_for_strength(self, strength: float, width: int):
        assert width_for_strength(strength) == width

    @given(st.floats(min_value=0, max_value=100))
    def test_width_is_bounded_and_monotonic(self, strength: float):
        width = width_for_strength(strength)

        assert 1 <= width <= 4
        assert width <= width_for_strength(min(100.0, strength + 10))

    def test_kind_colors(self):
        assert level_color("support") == "#10b981"
        assert level_color("resistance") == "#ef4444"
        assert level_color("call-wall") == "#ef4444"
        assert level_color("something-else") == "#787b86"

    def test_weak_levels_are_dashed(self):
        assert level_style("support", strength=50)[2] == "dashed"
        assert level_style("support", strength=90)[2] == "solid"

    def test_explicit_overrides_win(self):
        color, width, style = level_style(
            "support", strength=10, color="#123456", line_style="dotted", line_width=4
        )

        assert (color, width, style) == ("#123456", 4, "dotted")

    def test_gamma_defaults(self):
        assert level_style("call_wall") == ("#ef4444", 3, "dashed")
        assert level_style("max_pain") == ("#a855f7", 2, "solid")

    def test_rendered_level_carries_style(self, registry: LevelRegistry):
        registry.update([PriceLevel(price=95.0, kind="pivot", label="P")])
        level = registry.ordered()[0]

        assert level.color == "#a78bfa"
        assert level.line_style == "dotted"
        assert level.label == "P"
        assert not level.is_gamma


class TestIsolation:
    def test_registries_do_not_share_slots(self):
        a = LevelRegistry(clock=lambda: NOW)
        b = LevelRegistry(clock=lambda: NOW, diagnostics=Diagnostics())

        a.update([support(95.0)])

        assert b.ordered() == []
