"""Indicator engine for one chart instance.

Keeps every overlay series aligned with the candle store and offers two
paths: a full O(n) recompute for bulk loads and an O(1) amortized path for
live ticks. The live path keeps the indicator state as of the last
committed bar, so a tick that mutates the in-progress bar only replays that
one bar.
"""

from typing import Optional, Sequence, Union

from kcuchart.indicators.session import DEFAULT_SESSION_TIMEZONE
from kcuchart.indicators.technical import (
    EMA_RIBBON_PERIODS,
    EmaRibbonState,
    EmaState,
    RibbonState,
    SmaState,
    VwapState,
    vwap_band_names,
    vwap_band_values,
)
from kcuchart.models import Candle, IndicatorSeries

State = Union[EmaState, SmaState, VwapState, EmaRibbonState]
Values = dict[str, Optional[float]]

CLOUD_SERIES = "cloud"
VWAP_SERIES = "vwap"
RIBBON_STATE = "ribbon"


class IndicatorEngine:
    """Computes EMA, SMA, EMA cloud, EMA ribbon and session VWAP series."""

    def __init__(
        self,
        ema_periods: Sequence[int] = (8, 21),
        sma_period: Optional[int] = 200,
        timezone: str = DEFAULT_SESSION_TIMEZONE,
        ribbon_periods: Sequence[int] = EMA_RIBBON_PERIODS,
        vwap_bands: bool = False,
    ):
        """Initialize the engine.

        Args:
            ema_periods: EMA periods to compute. The first two also drive
                the EMA cloud.
            sma_period: SMA period, or None to skip the SMA.
            timezone: Reference timezone for VWAP session resets.
            ribbon_periods: EMA ribbon periods, shortest first; empty to
                skip the ribbon.
            vwap_bands: Also compute the 1 and 2 standard deviation bands
                around VWAP.
        """
        self.ema_periods = tuple(ema_periods)
        self.sma_period = sma_period
        self.timezone = timezone
        self.ribbon_periods = tuple(ribbon_periods)
        self.vwap_bands = vwap_bands
        self.reset()

    @property
    def series_names(self) -> list[str]:
        names = [f"ema{p}" for p in self.ema_periods]
        if self.sma_period:
            names.append(f"sma{self.sma_period}")
        names.append(VWAP_SERIES)
        if self.vwap_bands:
            names += vwap_band_names()
        if len(self.ema_periods) >= 2:
            names.append(CLOUD_SERIES)
        return names

    def reset(self) -> None:
        """Drop all series and state."""
        self._committed: dict[str, State] = self._fresh_states()
        self._live: Optional[dict[str, State]] = None
        self._times: list[int] = []
        self._values: dict[str, list[Optional[float]]] = {
            name: [] for name in self.series_names
        }
        self._ribbon: list[Optional[RibbonState]] = []
        self._inside_bars: list[int] = []
        self._prior: Optional[Candle] = None
        self._building: Optional[Candle] = None

    def _fresh_states(self) -> dict[str, State]:
        states: dict[str, State] = {f"ema{p}": EmaState(p) for p in self.ema_periods}
        if self.sma_period:
            states[f"sma{self.sma_period}"] = SmaState(self.sma_period)
        states[VWAP_SERIES] = VwapState(timezone=self.timezone)
        if self.ribbon_periods:
            states[RIBBON_STATE] = EmaRibbonState(periods=self.ribbon_periods)
        return states

    def _apply(
        self, states: dict[str, State], candle: Candle
    ) -> tuple[Values, Optional[RibbonState]]:
        values: Values = {}
        ribbon = None
        for name, state in states.items():
            if isinstance(state, VwapState):
                values[name] = state.update(candle)
                if self.vwap_bands:
                    values.update(vwap_band_values(values[name], state.std_dev))
            elif isinstance(state, EmaRibbonState):
                ribbon = state.update(candle.close)
            else:
                values[name] = state.update(candle.close)

        if len(self.ema_periods) >= 2:
            fast = values[f"ema{self.ema_periods[0]}"]
            slow = values[f"ema{self.ema_periods[1]}"]
            values[CLOUD_SERIES] = (
                max(fast, slow) if fast is not None and slow is not None else None
            )
        return values, ribbon

    def _record(self, candle: Candle, values: Values, ribbon: Optional[RibbonState]) -> None:
        self._times.append(candle.time)
        for name, value in values.items():
            self._values[name].append(value)
        self._ribbon.append(ribbon)
        if self._is_inside(candle, self._prior):
            self._inside_bars.append(len(self._times) - 1)

    @staticmethod
    def _is_inside(candle: Candle, previous: Optional[Candle]) -> bool:
        return (
            previous is not None
            and candle.high < previous.high
            and candle.low > previous.low
        )

    def recompute(self, candles: Sequence[Candle]) -> dict[str, IndicatorSeries]:
        """Recompute every series from scratch.

        Args:
            candles: The full candle store contents, ascending by time.

        Returns:
            Mapping of series name to IndicatorSeries.
        """
        self.reset()
        if not candles:
            return self.series()

        for candle in candles[:-1]:
            self._record(candle, *self._apply(self._committed, candle))
            self._prior = candle

        self.append(candles[-1])
        return self.series()

    def append(self, candle: Candle) -> Values:
        """Commit the in-progress bar and extend every series by one bar.

        Returns:
            The new last value of every series.
        """
        if self._live is not None:
            self._committed = self._live
            self._prior = self._building

        self._live = {name: state.copy() for name, state in self._committed.items()}
        values, ribbon = self._apply(self._live, candle)
        self._building = candle
        self._record(candle, values, ribbon)
        return values

    def update_last(self, candle: Candle) -> Values:
        """Replace the in-progress bar and recompute only the last position.

        Returns:
            The new last value of every series.
        """
        if self._live is None:
            return self.append(candle)

        self._live = {name: state.copy() for name, state in self._committed.items()}
        values, ribbon = self._apply(self._live, candle)
        self._building = candle

        last = len(self._times) - 1
        self._times[last] = candle.time
        for name, value in values.items():
            self._values[name][last] = value
        self._ribbon[last] = ribbon

        if self._inside_bars and self._inside_bars[-1] == last:
            self._inside_bars.pop()
        if self._is_inside(candle, self._prior):
            self._inside_bars.append(last)
        return values

    def series(self) -> dict[str, IndicatorSeries]:
        """Snapshot of every series."""
        return {name: self.series_of(name) for name in self._values}

    def series_of(self, name: str) -> IndicatorSeries:
        """Snapshot of one series."""
        return IndicatorSeries(name=name, times=list(self._times), values=list(self._values[name]))

    def values(self, name: str) -> list[Optional[float]]:
        """Copy of the raw values of one series."""
        return list(self._values[name])

    @property
    def ribbon(self) -> list[Optional[RibbonState]]:
        """EMA ribbon state per bar; empty when the ribbon is disabled."""
        return list(self._ribbon) if self.ribbon_periods else []

    @property
    def inside_bars(self) -> list[int]:
        """Indices of inside bars (patience candles)."""
        return list(self._inside_bars)

    @property
    def cloud_bullish(self) -> bool:
        """True when the fast EMA is above the slow EMA at the last bar."""
        if len(self.ema_periods) < 2 or not self._times:
            return False
        fast = self._values[f"ema{self.ema_periods[0]}"][-1]
        slow = self._values[f"ema{self.ema_periods[1]}"][-1]
        return fast is not None and slow is not None and fast > slow

    def __len__(self) -> int:
        return len(self._times)
