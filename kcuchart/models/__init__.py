"""Data models for kcuchart."""

from kcuchart.models.candle import Candle, is_valid_price, to_epoch_seconds
from kcuchart.models.level import (
    GammaKind,
    GammaLevel,
    LevelKind,
    LineStyle,
    PriceLevel,
    RenderedLevel,
)
from kcuchart.models.series import IndicatorSeries, SeriesPoint

__all__ = [
    "Candle",
    "GammaKind",
    "GammaLevel",
    "IndicatorSeries",
    "LevelKind",
    "LineStyle",
    "PriceLevel",
    "RenderedLevel",
    "SeriesPoint",
    "is_valid_price",
    "to_epoch_seconds",
]
