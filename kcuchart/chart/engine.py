"""Chart engine: one chart instance wired end to end.

Each update cycle runs as a strict pipeline: candle store, then indicators,
then levels, then the render surface. All collaborators are passed in or
owned per instance; two charts never share state.

Nothing here raises into the UI. Bad input is dropped onto the diagnostics
sink, and surface failures (typically a widget torn down mid-update) are
logged and ignored. After ``destroy()`` every operation is a no-op.
"""

import logging
import time
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from pydantic import ValidationError

from kcuchart.chart.diagnostics import Diagnostics
from kcuchart.chart.dispatcher import LatencyObserver, LiveUpdateDispatcher, Tick, TickUpdate
from kcuchart.chart.levels import LevelRegistry, LevelSlot
from kcuchart.chart.store import CandleStore
from kcuchart.chart.surface import RecordingSurface, RenderSurface
from kcuchart.chart.viewport import ViewportController, ViewportPlan
from kcuchart.config import ChartSettings
from kcuchart.indicators.engine import IndicatorEngine
from kcuchart.indicators.technical import RibbonState
from kcuchart.models import (
    Candle,
    GammaLevel,
    IndicatorSeries,
    PriceLevel,
    RenderedLevel,
    SeriesPoint,
)

logger = logging.getLogger(__name__)


class ChartEngine:
    """Candles, indicators, levels and viewport for one symbol/timeframe."""

    def __init__(
        self,
        surface: Optional[RenderSurface] = None,
        settings: Optional[ChartSettings] = None,
        diagnostics: Optional[Diagnostics] = None,
        on_latency: Optional[LatencyObserver] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize the chart.

        Args:
            surface: Render surface; a RecordingSurface when omitted.
            settings: Chart settings; defaults when omitted.
            diagnostics: Sink for dropped inputs.
            on_latency: Called with each tick's processing time in ms.
            clock: Source of "now" for level anchors.
        """
        self.settings = settings or ChartSettings()
        self.surface = surface if surface is not None else RecordingSurface()
        self.diagnostics = diagnostics or Diagnostics()

        self.store = CandleStore()
        self.indicators = IndicatorEngine(
            ema_periods=self.settings.ema_periods,
            sma_period=self.settings.sma_period,
            timezone=self.settings.timezone,
            ribbon_periods=self.settings.ribbon_periods,
            vwap_bands=self.settings.vwap_bands,
        )
        self.levels = LevelRegistry(
            level_capacity=self.settings.level_capacity,
            gamma_capacity=self.settings.gamma_capacity,
            near_threshold=self.settings.near_threshold,
            anchor_years=self.settings.anchor_years,
            clock=clock,
            diagnostics=self.diagnostics,
        )
        self.dispatcher = LiveUpdateDispatcher(
            self.store, self.indicators, diagnostics=self.diagnostics, on_latency=on_latency
        )
        self.viewport = ViewportController(visible_bars=self.settings.visible_bars)

        self._marker_times: list[int] = []
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # ==================== Updates ====================

    def load(self, candles: Iterable[Union[Candle, Mapping[str, Any]]]) -> int:
        """Replace all bars and redraw everything.

        Bars must arrive sorted ascending; invalid bars are dropped.

        Returns:
            Number of bars now in the store.
        """
        if self._destroyed:
            return 0

        bars = [bar for bar in (self._coerce_bar(c) for c in candles) if bar is not None]
        self.store.bulk_load(bars)
        series = self.indicators.recompute(self.store.candles)
        changed = self.levels.refresh_proximity(self._last_close())
        self._marker_times = self._inside_bar_times()

        self._draw("set_candles", self.store.candles)
        for name, values in series.items():
            self._draw("set_series", name, values.points())
        self._draw("set_markers", self._marker_times)
        self._patch_levels(changed)
        self._apply_plan(self.viewport.on_bulk_load(len(self.store)))
        return len(self.store)

    def on_tick(self, tick: Tick, scroll_to_realtime: bool = False) -> Optional[TickUpdate]:
        """Apply one live tick.

        Returns:
            The applied update, or None when dropped or destroyed.
        """
        if self._destroyed:
            return None

        update = self.dispatcher.on_tick(tick)
        if update is None:
            return None

        changed = self.levels.refresh_proximity(update.candle.close)
        markers = self._inside_bar_times()

        self._draw("update_candle", update.candle)
        for name, value in update.values.items():
            if value is not None:
                self._draw(
                    "update_series_point", name, SeriesPoint(time=update.candle.time, value=value)
                )
            elif update.kind == "update":
                # The bar may already have a drawn point that is now absent
                self._draw("set_series", name, self.indicators.series_of(name).points())
        if markers != self._marker_times:
            self._marker_times = markers
            self._draw("set_markers", markers)
        self._patch_levels(changed)

        if update.kind == "append":
            self._apply_plan(self.viewport.on_append(len(self.store), scroll_to_realtime))
        return update

    def set_levels(
        self,
        levels: Iterable[Union[PriceLevel, Mapping[str, Any]]] = (),
        gamma_levels: Iterable[Union[GammaLevel, Mapping[str, Any]]] = (),
    ) -> list[LevelSlot]:
        """Replace the level snapshot and patch the slots that changed.

        Returns:
            Slots that were redrawn or cleared.
        """
        if self._destroyed:
            return []

        regular = self._coerce_levels(levels, PriceLevel)
        gamma = self._coerce_levels(gamma_levels, GammaLevel)
        changed = self.levels.update(regular, gamma, last_price=self._last_close())
        self._patch_levels(changed)
        return changed

    def scroll_to_realtime(self) -> None:
        if self._destroyed:
            return
        self._apply_plan(self.viewport.on_append(len(self.store), scroll_to_realtime=True))

    def destroy(self) -> None:
        """Release every primitive and turn later calls into no-ops."""
        if self._destroyed:
            return
        self._patch_levels(self.levels.release())
        self._draw("clear")
        self.store.clear()
        self.indicators.reset()
        self._marker_times = []
        self._destroyed = True

    # ==================== Accessors ====================

    def series(self) -> dict[str, IndicatorSeries]:
        return self.indicators.series()

    def rendered_levels(self) -> list[RenderedLevel]:
        return self.levels.ordered()

    def near_levels(self) -> list[RenderedLevel]:
        return self.levels.near_levels()

    def ribbon(self) -> Optional[RibbonState]:
        """EMA ribbon state at the last bar."""
        states = self.indicators.ribbon
        return states[-1] if states else None

    # ==================== Internals ====================

    def _last_close(self) -> Optional[float]:
        last = self.store.last()
        return last.close if last is not None else None

    def _inside_bar_times(self) -> list[int]:
        return [self.store[i].time for i in self.indicators.inside_bars]

    def _coerce_bar(self, item: Union[Candle, Mapping[str, Any]]) -> Optional[Candle]:
        if isinstance(item, Candle):
            bar = item
        else:
            try:
                bar = Candle.from_feed(item)
            except (ValidationError, AttributeError, TypeError) as e:
                self.diagnostics.record_drop("malformed bar", e)
                return None
        if not bar.is_valid:
            self.diagnostics.record_drop("invalid bar", bar)
            return None
        return bar

    def _coerce_levels(self, items: Iterable, model: type) -> list:
        result = []
        for item in items:
            if isinstance(item, model):
                result.append(item)
                continue
            try:
                result.append(model.model_validate(item))
            except ValidationError as e:
                self.diagnostics.record_drop("malformed level", e)
        return result

    def _patch_levels(self, slots: list[LevelSlot]) -> None:
        for slot in slots:
            if slot.active:
                self._draw("apply_level", slot)
            else:
                self._draw("clear_level", slot)

    def _apply_plan(self, plan: ViewportPlan) -> None:
        if plan.fit_content:
            self._draw("fit_content")
        if plan.visible_range is not None:
            self._draw("set_visible_range", plan.visible_range)

    def _draw(self, operation: str, *args) -> None:
        try:
            getattr(self.surface, operation)(*args)
        except Exception:
            logger.warning("Render surface %s failed", operation, exc_info=True)
