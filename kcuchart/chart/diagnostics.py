"""Diagnostics for the silent-degrade error policy.

Bad ticks and levels are dropped rather than raised. This sink counts every
drop by reason so tests and operators can still see what was discarded.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

DropCallback = Callable[[str, Any], None]


@dataclass
class Diagnostics:
    """Counts dropped inputs by reason and forwards them to an optional callback."""

    on_drop: Optional[DropCallback] = None
    drops: Counter = field(default_factory=Counter)

    def record_drop(self, reason: str, item: Any = None) -> None:
        self.drops[reason] += 1
        logger.warning("Dropped input (%s): %r", reason, item)
        if self.on_drop is not None:
            self.on_drop(reason, item)

    @property
    def total_dropped(self) -> int:
        return sum(self.drops.values())

    def reset(self) -> None:
        self.drops.clear()


@dataclass
class LatencyStats:
    """Aggregates per-tick processing times in milliseconds."""

    samples: list[float] = field(default_factory=list)

    def __call__(self, elapsed_ms: float) -> None:
        self.samples.append(elapsed_ms)

    @property
    def count(self) -> int:
        return len(self.samples)

    @property
    def mean(self) -> float:
        return sum(self.samples) / len(self.samples) if self.samples else 0.0

    @property
    def max(self) -> float:
        return max(self.samples) if self.samples else 0.0

    def percentile(self, pct: float) -> float:
        """Nearest-rank percentile (0-100)."""
        if not self.samples:
            return 0.0
        ordered = sorted(self.samples)
        rank = max(1, min(len(ordered), math.ceil(pct / 100 * len(ordered))))
        return ordered[rank - 1]
