"""Technical indicator calculations for the chart overlays.

Every batch function here is a fold over a small incremental state object,
so recomputing a whole series and extending it bar by bar give identical
values. Absent values are ``None``; no function in this module raises on bad
prices, and a result that would overflow to inf/NaN is absent instead.
"""

import math
from collections import deque
from dataclasses import dataclass, field, replace
from typing import Literal, Optional, Sequence

from kcuchart.indicators.session import DEFAULT_SESSION_TIMEZONE, session_key_of
from kcuchart.models.candle import Candle, is_valid_price

# Ripster-style ribbon: eight EMAs between the 8 and 21 cloud edges.
EMA_RIBBON_PERIODS = (8, 10, 12, 14, 16, 18, 20, 21)

# Share of adjacent ribbon pairs that must agree for a bullish/bearish stack.
RIBBON_STACK_RATIO = 0.7
# Strength is the ribbon spread in percent of price, times this, capped at 100.
RIBBON_STRENGTH_SCALE = 25
# Spread change (relative) below which the ribbon is neither expanding nor contracting.
RIBBON_TREND_TOLERANCE = 0.05

VWAP_BAND_MULTIPLIERS = (1, 2)

RibbonColor = Literal["bullish", "bearish", "neutral"]


def _is_finite(value: Optional[float]) -> bool:
    return value is not None and isinstance(value, (int, float)) and math.isfinite(value)


@dataclass
class EmaState:
    """Running exponential moving average.

    The seed is the simple average of the first ``period`` valid closes.
    A non-finite close produces no value and leaves the running EMA alone,
    so the next valid close continues from the last numeric EMA.
    """

    period: int
    seen: int = 0
    seed_sum: float = 0.0
    value: Optional[float] = None

    @property
    def multiplier(self) -> float:
        return 2 / (self.period + 1)

    def update(self, close: Optional[float]) -> Optional[float]:
        if self.period < 1 or not _is_finite(close):
            return None

        if self.value is None:
            seed_sum = self.seed_sum + close
            if not math.isfinite(seed_sum):
                return None
            self.seen += 1
            self.seed_sum = seed_sum
            if self.seen < self.period:
                return None
            self.value = self.seed_sum / self.period
            return self.value

        value = (close - self.value) * self.multiplier + self.value
        if not math.isfinite(value):
            return None
        self.value = value
        return self.value

    def copy(self) -> "EmaState":
        return replace(self)


@dataclass
class SmaState:
    """Running simple moving average over a fixed positional window.

    Invalid closes occupy a window position but are left out of the mean.
    """

    period: int
    window: deque = field(default_factory=deque)

    def update(self, close: Optional[float]) -> Optional[float]:
        if self.period < 1:
            return None

        self.window.append(close if _is_finite(close) else None)
        if len(self.window) > self.period:
            self.window.popleft()
        if len(self.window) < self.period:
            return None

        valid = [c for c in self.window if c is not None]
        if not valid:
            return None
        mean = sum(valid) / len(valid)
        return mean if math.isfinite(mean) else None

    def copy(self) -> "SmaState":
        return replace(self, window=deque(self.window))


@dataclass
class VwapState:
    """Session-anchored cumulative VWAP with standard deviation bands.

    Bars with zero or missing volume are excluded from the sums. Treating
    them as volume 1 would weight thin pre/post-market bars like regular
    hours bars; instead they carry the last valid VWAP of the session.
    The band deviation is the root mean square distance of each volume
    bar's typical price from the VWAP as of that bar.
    """

    timezone: str = DEFAULT_SESSION_TIMEZONE
    session: Optional[str] = None
    cumulative_tpv: float = 0.0
    cumulative_volume: float = 0.0
    squared_deviations: float = 0.0
    deviation_count: int = 0
    last_value: Optional[float] = None

    @property
    def std_dev(self) -> Optional[float]:
        if not self.deviation_count:
            return None
        return math.sqrt(self.squared_deviations / self.deviation_count)

    def reset(self) -> None:
        self.cumulative_tpv = 0.0
        self.cumulative_volume = 0.0
        self.squared_deviations = 0.0
        self.deviation_count = 0
        self.last_value = None

    def update(self, candle: Candle) -> Optional[float]:
        if not (
            is_valid_price(candle.high)
            and is_valid_price(candle.low)
            and is_valid_price(candle.close)
        ):
            return None

        key = session_key_of(candle.time, self.timezone)
        if key is None:
            return None
        if self.session is not None and key != self.session:
            self.reset()
        self.session = key

        if candle.has_volume:
            typical = candle.typical_price
            tpv = self.cumulative_tpv + typical * candle.volume
            volume = self.cumulative_volume + candle.volume
            value = tpv / volume
            deviation = typical - value
            squared = self.squared_deviations + deviation * deviation
            if not (math.isfinite(value) and math.isfinite(squared)):
                return None
            self.cumulative_tpv = tpv
            self.cumulative_volume = volume
            self.squared_deviations = squared
            self.deviation_count += 1
            self.last_value = value

        return self.last_value

    def copy(self) -> "VwapState":
        return replace(self)


@dataclass(frozen=True)
class RibbonState:
    """Stacking of the EMA ribbon at one bar."""

    color: RibbonColor
    strength: float = 0.0
    top: Optional[float] = None
    bottom: Optional[float] = None
    spread: float = 0.0
    expanding: bool = False
    contracting: bool = False


@dataclass
class EmaRibbonState:
    """Running EMA ribbon.

    Shorter EMAs above longer ones is a bullish stack. The spread (top to
    bottom, in percent of price) gives the strength, and its change since
    the previous bar tells whether the ribbon is expanding or contracting.
    """

    periods: tuple[int, ...] = EMA_RIBBON_PERIODS
    emas: list[EmaState] = field(default_factory=list)
    previous_spread: Optional[float] = None

    def __post_init__(self):
        if not self.emas:
            self.emas = [EmaState(p) for p in self.periods]

    def update(self, close: Optional[float]) -> Optional[RibbonState]:
        if not is_valid_price(close):
            return None

        values = [ema.update(close) for ema in self.emas]
        valid = [v for v in values if v is not None]
        if len(valid) < 2:
            state = RibbonState(color="neutral")
        else:
            state = self._stack(valid, close)

        previous = self.previous_spread
        self.previous_spread = state.spread
        if previous is None:
            return state
        return replace(
            state,
            expanding=state.spread > previous * (1 + RIBBON_TREND_TOLERANCE),
            contracting=state.spread < previous * (1 - RIBBON_TREND_TOLERANCE),
        )

    @staticmethod
    def _stack(valid: list[float], close: float) -> RibbonState:
        pairs = list(zip(valid, valid[1:]))
        needed = len(pairs) * RIBBON_STACK_RATIO
        if sum(1 for upper, lower in pairs if upper > lower) >= needed:
            color: RibbonColor = "bullish"
        elif sum(1 for upper, lower in pairs if upper < lower) >= needed:
            color = "bearish"
        else:
            color = "neutral"

        top, bottom = max(valid), min(valid)
        spread = (top - bottom) / close * 100
        if not math.isfinite(spread):
            return RibbonState(color="neutral")
        return RibbonState(
            color=color,
            strength=min(100.0, spread * RIBBON_STRENGTH_SCALE),
            top=top,
            bottom=bottom,
            spread=spread,
        )

    def copy(self) -> "EmaRibbonState":
        return replace(self, emas=[ema.copy() for ema in self.emas])


def calculate_ema(prices: Sequence[Optional[float]], period: int) -> list[Optional[float]]:
    """Calculate Exponential Moving Average.

    Args:
        prices: Close prices; ``None``/NaN/inf entries are treated as gaps.
        period: Number of periods for the EMA.

    Returns:
        List of EMA values aligned with ``prices``. Positions before the
        seed, and gap positions, are None.
    """
    state = EmaState(period)
    return [state.update(p) for p in prices]


def calculate_sma(prices: Sequence[Optional[float]], period: int) -> list[Optional[float]]:
    """Calculate Simple Moving Average.

    Args:
        prices: Close prices.
        period: Window length.

    Returns:
        List of SMA values. First (period-1) values are None.
    """
    state = SmaState(period)
    return [state.update(p) for p in prices]


def calculate_vwap(
    candles: Sequence[Candle],
    timezone: str = DEFAULT_SESSION_TIMEZONE,
) -> list[Optional[float]]:
    """Calculate session Volume Weighted Average Price.

    Sums reset whenever the session key (calendar date in ``timezone``)
    changes between consecutive valid bars.

    Args:
        candles: Bars in ascending time order.
        timezone: Reference timezone for session boundaries.

    Returns:
        List of VWAP values aligned with ``candles``.
    """
    state = VwapState(timezone=timezone)
    return [state.update(c) for c in candles]


def vwap_band_names(multipliers: Sequence[int] = VWAP_BAND_MULTIPLIERS) -> list[str]:
    names = []
    for k in multipliers:
        names += [f"vwap_upper{k}", f"vwap_lower{k}"]
    return names


def vwap_band_values(
    vwap: Optional[float],
    std_dev: Optional[float],
    multipliers: Sequence[int] = VWAP_BAND_MULTIPLIERS,
) -> dict[str, Optional[float]]:
    """Band values around one VWAP point; all absent when either input is."""
    present = vwap is not None and std_dev is not None
    values: dict[str, Optional[float]] = {}
    for k in multipliers:
        upper = vwap + k * std_dev if present else None
        lower = vwap - k * std_dev if present else None
        values[f"vwap_upper{k}"] = upper if _is_finite(upper) else None
        values[f"vwap_lower{k}"] = lower if _is_finite(lower) else None
    return values


def calculate_vwap_bands(
    candles: Sequence[Candle],
    timezone: str = DEFAULT_SESSION_TIMEZONE,
    multipliers: Sequence[int] = VWAP_BAND_MULTIPLIERS,
) -> dict[str, list[Optional[float]]]:
    """Calculate session VWAP with standard deviation bands.

    Returns:
        Mapping with a ``"vwap"`` list plus ``vwap_upper{k}``/``vwap_lower{k}``
        lists for each multiplier, all aligned with ``candles``.
    """
    state = VwapState(timezone=timezone)
    result: dict[str, list[Optional[float]]] = {"vwap": []}
    for name in vwap_band_names(multipliers):
        result[name] = []

    for candle in candles:
        vwap = state.update(candle)
        result["vwap"].append(vwap)
        for name, value in vwap_band_values(vwap, state.std_dev, multipliers).items():
            result[name].append(value)
    return result


def calculate_ema_ribbon(
    prices: Sequence[Optional[float]],
    periods: Sequence[int] = EMA_RIBBON_PERIODS,
) -> list[Optional[RibbonState]]:
    """Calculate the EMA ribbon stacking state for every bar.

    Args:
        prices: Close prices; invalid entries give None.
        periods: Ribbon EMA periods, shortest first.

    Returns:
        List of RibbonState (or None) aligned with ``prices``.
    """
    state = EmaRibbonState(periods=tuple(periods))
    return [state.update(p) for p in prices]


def calculate_ema_cloud(
    fast: Sequence[Optional[float]],
    slow: Sequence[Optional[float]],
) -> tuple[list[Optional[float]], bool]:
    """Upper edge of the fast/slow EMA cloud and its current bias.

    Returns:
        Tuple of (max(fast, slow) per position, True when the last fast
        value is above the last slow value).
    """
    cloud = [
        max(f, s) if f is not None and s is not None else None
        for f, s in zip(fast, slow)
    ]
    last_fast = fast[-1] if fast else None
    last_slow = slow[-1] if slow else None
    bullish = last_fast is not None and last_slow is not None and last_fast > last_slow
    return cloud, bullish


def detect_inside_bars(candles: Sequence[Candle]) -> list[int]:
    """Indices of inside bars (patience candles).

    An inside bar has a lower high and a higher low than the bar before it.
    """
    return [
        i
        for i in range(1, len(candles))
        if candles[i].high < candles[i - 1].high and candles[i].low > candles[i - 1].low
    ]
