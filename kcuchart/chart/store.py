"""In-memory candle store for one symbol/timeframe."""

from typing import Iterable, Iterator, Literal, Optional

from kcuchart.models import Candle

AppendResult = Literal["appended", "replaced", "rejected"]


class CandleStore:
    """Ordered, time-indexed sequence of bars.

    Times are strictly increasing once committed. The last bar may be
    replaced while it is still in progress. The store never sorts and never
    triggers indicator recomputation itself.
    """

    def __init__(self, candles: Optional[Iterable[Candle]] = None):
        self._candles: list[Candle] = list(candles or [])

    def append(self, candle: Candle) -> AppendResult:
        """Add or replace the most recent bar.

        A newer time is pushed, an equal time replaces the in-progress bar,
        and an older time is ignored (feeds reorder and duplicate ticks on
        reconnect).

        Returns:
            What happened to the store.
        """
        last = self.last_time()
        if last is None or candle.time > last:
            self._candles.append(candle)
            return "appended"
        if candle.time == last:
            self._candles[-1] = candle
            return "replaced"
        return "rejected"

    def bulk_load(self, candles: Iterable[Candle]) -> None:
        """Replace the whole store. Callers must pass bars sorted ascending."""
        self._candles = list(candles)

    def clear(self) -> None:
        self._candles = []

    def last_time(self) -> Optional[int]:
        """Time of the most recent bar, or None when empty."""
        return self._candles[-1].time if self._candles else None

    def last(self) -> Optional[Candle]:
        return self._candles[-1] if self._candles else None

    @property
    def candles(self) -> tuple[Candle, ...]:
        """Immutable snapshot of the stored bars."""
        return tuple(self._candles)

    def __len__(self) -> int:
        return len(self._candles)

    def __iter__(self) -> Iterator[Candle]:
        return iter(self._candles)

    def __getitem__(self, index):
        return self._candles[index]
