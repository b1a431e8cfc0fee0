"""Render surface boundary.

The charting widget is an external collaborator. The chart engine only
talks to it through this protocol, so everything above it can run headless.
"""

from typing import Optional, Protocol, Sequence

from kcuchart.chart.levels import LevelSlot
from kcuchart.chart.viewport import VisibleRange
from kcuchart.models import Candle, RenderedLevel, SeriesPoint


class RenderSurface(Protocol):
    """Operations the engine needs from a canvas chart."""

    def set_candles(self, candles: Sequence[Candle]) -> None: ...

    def update_candle(self, candle: Candle) -> None: ...

    def set_series(self, name: str, points: Sequence[SeriesPoint]) -> None: ...

    def update_series_point(self, name: str, point: SeriesPoint) -> None: ...

    def set_markers(self, times: Sequence[int]) -> None: ...

    def apply_level(self, slot: LevelSlot) -> None: ...

    def clear_level(self, slot: LevelSlot) -> None: ...

    def set_visible_range(self, visible_range: VisibleRange) -> None: ...

    def fit_content(self) -> None: ...

    def clear(self) -> None: ...


class RecordingSurface:
    """In-memory surface that keeps whatever it was told to draw.

    Used for headless runs (CLI, tests). ``calls`` logs operation names in
    order.
    """

    def __init__(self):
        self.calls: list[str] = []
        self.clear()
        self.calls.clear()
        self.fit_count = 0

    def set_candles(self, candles: Sequence[Candle]) -> None:
        self.calls.append("set_candles")
        self.candles = list(candles)

    def update_candle(self, candle: Candle) -> None:
        self.calls.append("update_candle")
        if self.candles and self.candles[-1].time == candle.time:
            self.candles[-1] = candle
        else:
            self.candles.append(candle)

    def set_series(self, name: str, points: Sequence[SeriesPoint]) -> None:
        self.calls.append(f"set_series:{name}")
        self.series[name] = list(points)

    def update_series_point(self, name: str, point: SeriesPoint) -> None:
        self.calls.append(f"update_series_point:{name}")
        points = self.series.setdefault(name, [])
        if points and points[-1].time == point.time:
            points[-1] = point
        else:
            points.append(point)

    def set_markers(self, times: Sequence[int]) -> None:
        self.calls.append("set_markers")
        self.markers = list(times)

    def apply_level(self, slot: LevelSlot) -> None:
        self.calls.append(f"apply_level:{slot.pool}:{slot.index}")
        self.levels[(slot.pool, slot.index)] = slot.level

    def clear_level(self, slot: LevelSlot) -> None:
        self.calls.append(f"clear_level:{slot.pool}:{slot.index}")
        self.levels.pop((slot.pool, slot.index), None)

    def set_visible_range(self, visible_range: VisibleRange) -> None:
        self.calls.append("set_visible_range")
        self.visible_range = visible_range

    def fit_content(self) -> None:
        self.calls.append("fit_content")
        self.fit_count += 1

    def clear(self) -> None:
        self.calls.append("clear")
        self.candles: list[Candle] = []
        self.series: dict[str, list[SeriesPoint]] = {}
        self.markers: list[int] = []
        self.levels: dict[tuple[str, int], Optional[RenderedLevel]] = {}
        self.visible_range: Optional[VisibleRange] = None

    def drawn_levels(self) -> list[RenderedLevel]:
        """Levels currently drawn, regular pool first, in slot order."""
        keys = sorted(self.levels, key=lambda k: (k[0] != "level", k[1]))
        return [self.levels[k] for k in keys if self.levels[k] is not None]
