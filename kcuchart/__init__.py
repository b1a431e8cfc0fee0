"""kcuchart - real-time indicator and price-level overlay engine for KCU charts."""

__version__ = "0.1.0"
