"""Indicator series data model."""

from typing import Optional

from pydantic import BaseModel, Field


class SeriesPoint(BaseModel):
    """One rendered point of a line series."""

    time: int
    value: float

    model_config = {"frozen": True}


class IndicatorSeries(BaseModel):
    """Indicator values aligned by position with the candle store.

    ``None`` marks an absent value (warm-up or invalid input); absent values
    are never rendered.
    """

    name: str = Field(..., description="Series name, e.g. 'ema8' or 'vwap'")
    times: list[int] = Field(default_factory=list)
    values: list[Optional[float]] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.values)

    def points(self) -> list[SeriesPoint]:
        """Present values only, in render form."""
        return [
            SeriesPoint(time=t, value=v)
            for t, v in zip(self.times, self.values)
            if v is not None
        ]

    def last(self) -> Optional[float]:
        """Value at the last position, or None."""
        return self.values[-1] if self.values else None
