"""Technical indicators module."""

from kcuchart.indicators.engine import IndicatorEngine
from kcuchart.indicators.session import (
    DEFAULT_SESSION_TIMEZONE,
    SessionClock,
    session_key_of,
)
from kcuchart.indicators.technical import (
    EMA_RIBBON_PERIODS,
    EmaRibbonState,
    EmaState,
    RibbonState,
    SmaState,
    VwapState,
    calculate_ema,
    calculate_ema_cloud,
    calculate_ema_ribbon,
    calculate_sma,
    calculate_vwap,
    calculate_vwap_bands,
    detect_inside_bars,
)

__all__ = [
    "DEFAULT_SESSION_TIMEZONE",
    "EMA_RIBBON_PERIODS",
    "EmaRibbonState",
    "EmaState",
    "IndicatorEngine",
    "RibbonState",
    "SessionClock",
    "SmaState",
    "VwapState",
    "calculate_ema",
    "calculate_ema_cloud",
    "calculate_ema_ribbon",
    "calculate_sma",
    "calculate_vwap",
    "calculate_vwap_bands",
    "detect_inside_bars",
    "session_key_of",
]
