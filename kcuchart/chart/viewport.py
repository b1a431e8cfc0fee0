"""Viewport policy: what the chart shows as data arrives."""

from dataclasses import dataclass
from typing import Optional

DEFAULT_VISIBLE_BARS = 200


@dataclass(frozen=True)
class VisibleRange:
    """Logical bar index range, both ends inclusive."""

    start: int
    end: int


@dataclass(frozen=True)
class ViewportPlan:
    """What the surface should do after an update."""

    fit_content: bool = False
    visible_range: Optional[VisibleRange] = None

    @property
    def is_noop(self) -> bool:
        return not self.fit_content and self.visible_range is None


class ViewportController:
    """Auto-scroll and fit-to-content policy.

    A bulk load fits everything, then narrows to the most recent bars. Live
    appends leave the viewport alone unless the caller asks to scroll to
    real time or follow mode is on.
    """

    def __init__(self, visible_bars: int = DEFAULT_VISIBLE_BARS, follow: bool = False):
        self.visible_bars = max(1, visible_bars)
        self.follow = follow

    def recent_range(self, bar_count: int, bars: Optional[int] = None) -> Optional[VisibleRange]:
        """Range covering the last ``bars`` bars, clamped to what exists."""
        if bar_count <= 0:
            return None
        wanted = self.visible_bars if bars is None else bars
        shown = max(1, min(wanted, bar_count))
        return VisibleRange(start=bar_count - shown, end=bar_count - 1)

    def on_bulk_load(self, bar_count: int) -> ViewportPlan:
        if bar_count <= 0:
            return ViewportPlan()
        return ViewportPlan(fit_content=True, visible_range=self.recent_range(bar_count))

    def on_append(self, bar_count: int, scroll_to_realtime: bool = False) -> ViewportPlan:
        if not (scroll_to_realtime or self.follow):
            return ViewportPlan()
        return ViewportPlan(visible_range=self.recent_range(bar_count))

    def set_visible_bars(self, bars: int) -> None:
        self.visible_bars = max(1, bars)
