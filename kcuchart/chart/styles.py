"""Level colors and line styles.

Each level kind has a fixed default look. An explicit color, style or width
on the level always wins over the defaults.
"""

from typing import Optional

from kcuchart.models import LineStyle

DEFAULT_LEVEL_COLOR = "#787b86"

LEVEL_COLORS: dict[str, str] = {
    "support": "#10b981",
    "resistance": "#ef4444",
    "vwap": "#8b5cf6",
    "ema": "#22c55e",
    "pivot": "#a78bfa",
    "custom": DEFAULT_LEVEL_COLOR,
    # Gamma
    "call_wall": "#ef4444",
    "put_wall": "#10b981",
    "zero_gamma": "#f59e0b",
    "gamma_flip": "#f59e0b",
    "max_pain": "#a855f7",
}

DEFAULT_LINE_WIDTHS: dict[str, int] = {
    "vwap": 2,
    "call_wall": 3,
    "put_wall": 3,
    "zero_gamma": 2,
    "gamma_flip": 2,
    "max_pain": 2,
}

DEFAULT_LINE_STYLES: dict[str, LineStyle] = {
    "pivot": "dotted",
    "call_wall": "dashed",
    "put_wall": "dashed",
    "zero_gamma": "dashed",
    "gamma_flip": "dashed",
}

# Levels below this strength are drawn dashed unless a style is given.
WEAK_LEVEL_STRENGTH = 70

MIN_LINE_WIDTH = 1
MAX_LINE_WIDTH = 4


def level_color(kind: str) -> str:
    """Default color for a level kind (unknown kinds are muted gray)."""
    return LEVEL_COLORS.get(kind.lower().replace("-", "_"), DEFAULT_LEVEL_COLOR)


def width_for_strength(strength: float) -> int:
    """Map a 0-100 strength onto a 1-4 line width, stronger is thicker."""
    width = MIN_LINE_WIDTH + int(strength * (MAX_LINE_WIDTH - MIN_LINE_WIDTH) / 100 + 0.5)
    return max(MIN_LINE_WIDTH, min(MAX_LINE_WIDTH, width))


def level_style(
    kind: str,
    strength: Optional[float] = None,
    color: Optional[str] = None,
    line_style: Optional[LineStyle] = None,
    line_width: Optional[int] = None,
) -> tuple[str, int, LineStyle]:
    """Resolve the color, line width and line style for a level.

    Args:
        kind: Level kind, e.g. "support" or "call_wall".
        strength: Optional 0-100 strength; scales the width.
        color: Explicit color override.
        line_style: Explicit style override.
        line_width: Explicit width override.

    Returns:
        Tuple of (color, line_width, line_style).
    """
    normalized = kind.lower().replace("-", "_")

    if line_width is not None:
        width = max(MIN_LINE_WIDTH, min(MAX_LINE_WIDTH, line_width))
    elif strength is not None:
        width = width_for_strength(strength)
    else:
        width = DEFAULT_LINE_WIDTHS.get(normalized, MIN_LINE_WIDTH)

    if line_style is not None:
        style = line_style
    elif normalized in DEFAULT_LINE_STYLES:
        style = DEFAULT_LINE_STYLES[normalized]
    elif strength is not None and strength < WEAK_LEVEL_STRENGTH:
        style = "dashed"
    else:
        style = "solid"

    return color or level_color(normalized), width, style
