"""Level registry: maps price levels onto a fixed pool of line slots.

The pools are allocated once per chart and reused for its whole life.
Levels are placed by position on every update; only slots whose rendered
content actually changed are reported back, so the surface is patched
instead of redrawn.
"""

import time
from dataclasses import dataclass
from typing import Callable, Iterable, Literal, Optional

from kcuchart.chart.diagnostics import Diagnostics
from kcuchart.chart.styles import level_style
from kcuchart.models import GammaLevel, PriceLevel, RenderedLevel, is_valid_price

DEFAULT_LEVEL_CAPACITY = 20
DEFAULT_GAMMA_CAPACITY = 5
DEFAULT_NEAR_THRESHOLD = 0.01
DEFAULT_ANCHOR_YEARS = 10

SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# Max pain is a magnet, not a wall; it never triggers the proximity alert.
PROXIMITY_EXCLUDED = {"max_pain"}

PoolName = Literal["level", "gamma"]


@dataclass
class LevelSlot:
    """One pre-allocated line primitive."""

    index: int
    pool: PoolName
    level: Optional[RenderedLevel] = None

    @property
    def active(self) -> bool:
        return self.level is not None


def level_key(kind: str, price: float, label: str) -> str:
    """Stable identity of a level across updates."""
    return f"{kind}:{price:.6f}:{label}"


class LevelRegistry:
    """Bounded collection of horizontal levels for one chart."""

    def __init__(
        self,
        level_capacity: int = DEFAULT_LEVEL_CAPACITY,
        gamma_capacity: int = DEFAULT_GAMMA_CAPACITY,
        near_threshold: float = DEFAULT_NEAR_THRESHOLD,
        anchor_years: int = DEFAULT_ANCHOR_YEARS,
        clock: Callable[[], float] = time.time,
        diagnostics: Optional[Diagnostics] = None,
    ):
        """Initialize the registry and allocate both pools.

        Args:
            level_capacity: Number of regular level slots.
            gamma_capacity: Number of gamma level slots.
            near_threshold: Fractional distance from price that flags a
                gamma level as near (0.01 = 1%).
            anchor_years: Lines span this many years either side of now so
                they cover any pan/zoom position.
            clock: Source of "now" in epoch seconds.
            diagnostics: Sink for dropped levels.
        """
        self.near_threshold = near_threshold
        self.diagnostics = diagnostics or Diagnostics()

        now = int(clock())
        span = anchor_years * SECONDS_PER_YEAR
        self.start_time = now - span
        self.end_time = now + span

        self.level_slots = [LevelSlot(i, "level") for i in range(level_capacity)]
        self.gamma_slots = [LevelSlot(i, "gamma") for i in range(gamma_capacity)]
        self._gamma_inputs: list[GammaLevel] = []
        self._last_price: Optional[float] = None

    @property
    def slots(self) -> list[LevelSlot]:
        return self.level_slots + self.gamma_slots

    def ordered(self) -> list[RenderedLevel]:
        """Active levels in slot order, regular levels first."""
        return [slot.level for slot in self.slots if slot.level is not None]

    def update(
        self,
        levels: Iterable[PriceLevel],
        gamma_levels: Iterable[GammaLevel] = (),
        last_price: Optional[float] = None,
    ) -> list[LevelSlot]:
        """Re-derive every slot from a full level snapshot.

        Levels with invalid prices are dropped; anything beyond a pool's
        capacity is truncated in input order.

        Returns:
            Slots whose content changed and need to be redrawn or cleared.
        """
        if last_price is not None:
            self._last_price = last_price

        regular = self._valid(levels, len(self.level_slots), "level")
        gamma = self._valid(gamma_levels, len(self.gamma_slots), "gamma level")
        self._gamma_inputs = gamma

        rendered = [self._render(level) for level in regular]
        rendered_gamma = [self._render_gamma(level) for level in gamma]

        return self._assign(self.level_slots, rendered) + self._assign(
            self.gamma_slots, rendered_gamma
        )

    def refresh_proximity(self, last_price: Optional[float]) -> list[LevelSlot]:
        """Recompute the near flags of gamma levels against a new close.

        Returns:
            Gamma slots whose near flag flipped.
        """
        self._last_price = last_price
        rendered = [self._render_gamma(level) for level in self._gamma_inputs]
        return self._assign(self.gamma_slots, rendered)

    def near_levels(self) -> list[RenderedLevel]:
        return [level for level in self.ordered() if level.near]

    def release(self) -> list[LevelSlot]:
        """Clear every slot; the pool itself stays allocated."""
        self._gamma_inputs = []
        return self._assign(self.level_slots, []) + self._assign(self.gamma_slots, [])

    def _valid(self, items, capacity: int, what: str) -> list:
        valid = []
        for item in items:
            if not is_valid_price(item.price):
                self.diagnostics.record_drop(f"invalid {what} price", item)
                continue
            valid.append(item)
        if len(valid) > capacity:
            for item in valid[capacity:]:
                self.diagnostics.record_drop(f"{what} over capacity", item)
        return valid[:capacity]

    def _render(self, level: PriceLevel) -> RenderedLevel:
        color, width, style = level_style(
            level.kind,
            strength=level.strength,
            color=level.color,
            line_style=level.line_style,
            line_width=level.line_width,
        )
        return RenderedLevel(
            key=level_key(level.kind, level.price, level.label),
            price=level.price,
            label=level.label,
            kind=level.kind,
            color=color,
            line_width=width,
            line_style=style,
            start_time=self.start_time,
            end_time=self.end_time,
        )

    def _render_gamma(self, level: GammaLevel) -> RenderedLevel:
        color, width, style = level_style(
            level.kind, strength=level.strength, color=level.color
        )
        label = level.display_label
        return RenderedLevel(
            key=level_key(level.kind, level.price, label),
            price=level.price,
            label=label,
            kind=level.kind,
            color=color,
            line_width=width,
            line_style=style,
            start_time=self.start_time,
            end_time=self.end_time,
            is_gamma=True,
            near=self._is_near(level),
        )

    def _is_near(self, level: GammaLevel) -> bool:
        price = self._last_price
        if level.kind in PROXIMITY_EXCLUDED or not is_valid_price(price):
            return False
        return abs(level.price - price) / price <= self.near_threshold

    @staticmethod
    def _assign(slots: list[LevelSlot], rendered: list[RenderedLevel]) -> list[LevelSlot]:
        changed = []
        for i, slot in enumerate(slots):
            new = rendered[i] if i < len(rendered) else None
            if slot.level != new:
                slot.level = new
                changed.append(slot)
        return changed
