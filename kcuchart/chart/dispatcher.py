"""Live update dispatcher.

Routes feed ticks into the candle store and the indicator engine. The last
bar is "building" until a tick with a later timestamp arrives, at which
point it is committed and a new building bar starts.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Literal, Mapping, Optional, Union

from pydantic import ValidationError

from kcuchart.chart.diagnostics import Diagnostics
from kcuchart.chart.store import CandleStore
from kcuchart.indicators.engine import IndicatorEngine
from kcuchart.models import Candle

Tick = Union[Candle, Mapping[str, Any]]
LatencyObserver = Callable[[float], None]


@dataclass(frozen=True)
class TickUpdate:
    """Outcome of one processed tick."""

    kind: Literal["update", "append"]
    candle: Candle
    values: dict[str, Optional[float]]
    elapsed_ms: float


def merge_tick(building: Candle, tick: Candle) -> Candle:
    """Fold a same-timestamp tick into the building bar.

    High and low widen, close takes the latest price and open never moves.
    Volume follows the tick when it carries one.
    """
    return building.model_copy(
        update={
            "high": max(building.high, tick.high),
            "low": min(building.low, tick.low),
            "close": tick.close,
            "volume": tick.volume if tick.volume is not None else building.volume,
        }
    )


class LiveUpdateDispatcher:
    """Two-state (building/committed) tick router for one chart."""

    def __init__(
        self,
        store: CandleStore,
        engine: IndicatorEngine,
        diagnostics: Optional[Diagnostics] = None,
        on_latency: Optional[LatencyObserver] = None,
        clock: Callable[[], float] = time.perf_counter,
    ):
        self.store = store
        self.engine = engine
        self.diagnostics = diagnostics or Diagnostics()
        self.on_latency = on_latency
        self._clock = clock

    @property
    def building_time(self) -> Optional[int]:
        """Time of the in-progress bar, or None before the first bar."""
        return self.store.last_time()

    def on_tick(self, tick: Tick) -> Optional[TickUpdate]:
        """Process one tick.

        Malformed and stale ticks are dropped and recorded on the
        diagnostics sink; nothing is raised to the caller.

        Returns:
            The applied update, or None when the tick was dropped.
        """
        started = self._clock()

        candle = self._coerce(tick)
        if candle is None:
            return None

        building = self.store.last_time()
        if building is not None and candle.time < building:
            self.diagnostics.record_drop("stale tick", candle)
            return None

        if building is not None and candle.time == building:
            candle = merge_tick(self.store.last(), candle)
            self.store.append(candle)
            values = self.engine.update_last(candle)
            kind = "update"
        else:
            self.store.append(candle)
            values = self.engine.append(candle)
            kind = "append"

        elapsed_ms = (self._clock() - started) * 1000
        if self.on_latency is not None:
            self.on_latency(elapsed_ms)

        return TickUpdate(kind=kind, candle=candle, values=values, elapsed_ms=elapsed_ms)

    def _coerce(self, tick: Tick) -> Optional[Candle]:
        if isinstance(tick, Candle):
            candle = tick
        else:
            try:
                candle = Candle.from_feed(tick)
            except (ValidationError, AttributeError, TypeError) as e:
                self.diagnostics.record_drop("malformed tick", e)
                return None

        if not candle.has_valid_time:
            self.diagnostics.record_drop("invalid time", candle)
            return None
        if not candle.is_valid:
            self.diagnostics.record_drop("invalid price", candle)
            return None
        return candle
