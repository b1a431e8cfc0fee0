"""Chart core: candle store, levels, live updates and viewport."""

from kcuchart.chart.diagnostics import Diagnostics, LatencyStats
from kcuchart.chart.dispatcher import LiveUpdateDispatcher, TickUpdate, merge_tick
from kcuchart.chart.engine import ChartEngine
from kcuchart.chart.levels import LevelRegistry, LevelSlot
from kcuchart.chart.store import CandleStore
from kcuchart.chart.surface import RecordingSurface, RenderSurface
from kcuchart.chart.viewport import ViewportController, ViewportPlan, VisibleRange

__all__ = [
    "CandleStore",
    "ChartEngine",
    "Diagnostics",
    "LatencyStats",
    "LevelRegistry",
    "LevelSlot",
    "LiveUpdateDispatcher",
    "RecordingSurface",
    "RenderSurface",
    "TickUpdate",
    "ViewportController",
    "ViewportPlan",
    "VisibleRange",
    "merge_tick",
]
