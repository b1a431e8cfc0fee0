"""Candle (OHLCV) data model."""

import math
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

# Feeds mix epoch seconds and epoch milliseconds; anything above this is ms.
MILLISECONDS_THRESHOLD = 1e12

# 9999-12-31T23:59:59Z, the last second datetime can represent.
MAX_EPOCH_SECONDS = 253_402_300_799

# Short keys used by the practice/replay feeds.
FEED_KEY_ALIASES = {
    "t": "time",
    "timestamp": "time",
    "o": "open",
    "h": "high",
    "l": "low",
    "c": "close",
    "v": "volume",
}


def to_epoch_seconds(value: Any) -> Any:
    """Normalize a feed timestamp to integer epoch seconds.

    Accepts epoch seconds, epoch milliseconds, ISO-8601 strings and
    datetimes (naive datetimes are taken as UTC). Values that cannot be
    normalized are returned unchanged so model validation rejects them.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    if isinstance(value, str):
        text = value.strip()
        try:
            value = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return value
            return to_epoch_seconds(parsed)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return value
        if value > MILLISECONDS_THRESHOLD:
            return int(value // 1000)
        return int(math.floor(value))
    return value


def is_valid_price(value: Optional[float]) -> bool:
    """A usable price is a finite, strictly positive number."""
    return value is not None and math.isfinite(value) and value > 0


class Candle(BaseModel):
    """Represents a single OHLCV bar keyed by epoch seconds.

    Prices are deliberately not range-checked: a bad tick has to reach the
    indicator engine so it can be degraded to an absent value there.
    """

    time: int = Field(..., description="Bar open time in epoch seconds")
    open: float = Field(..., description="Opening price")
    high: float = Field(..., description="High price")
    low: float = Field(..., description="Low price")
    close: float = Field(..., description="Closing price")
    volume: Optional[float] = Field(default=None, description="Traded volume, if known")

    model_config = {"frozen": True}

    @field_validator("time", mode="before")
    @classmethod
    def _normalize_time(cls, value: Any) -> Any:
        return to_epoch_seconds(value)

    @classmethod
    def from_feed(cls, record: Mapping[str, Any]) -> "Candle":
        """Build a candle from a loose feed record (long or short keys)."""
        data = {}
        for key, value in record.items():
            data[FEED_KEY_ALIASES.get(key, key)] = value
        return cls.model_validate(data)

    @property
    def has_valid_time(self) -> bool:
        """True when time is positive and a calendar date can be derived from it."""
        return 0 < self.time <= MAX_EPOCH_SECONDS

    @property
    def is_valid(self) -> bool:
        """True when every price is finite and positive and time is usable."""
        return self.has_valid_time and all(
            is_valid_price(p) for p in (self.open, self.high, self.low, self.close)
        )

    @property
    def has_volume(self) -> bool:
        """True when the bar carries a finite, strictly positive volume."""
        return (
            self.volume is not None
            and math.isfinite(self.volume)
            and self.volume > 0
        )

    @property
    def typical_price(self) -> float:
        """(high + low + close) / 3."""
        return (self.high + self.low + self.close) / 3
