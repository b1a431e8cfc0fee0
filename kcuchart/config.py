"""Configuration for kcuchart.

Settings live in ``~/.config/kcuchart/config.toml``::

    [chart]
    timezone = "America/New_York"
    ema_periods = [8, 21]
    sma_period = 200
    vwap_bands = false
    level_capacity = 20
    gamma_capacity = 5
    visible_bars = 200

    [database]
    path = "~/.config/kcuchart/kcuchart.db"

Every key is optional.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import pytz
import toml
from pydantic import BaseModel, Field, field_validator

from kcuchart.indicators.technical import EMA_RIBBON_PERIODS

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "kcuchart"
DEFAULT_CONFIG_PATH = CONFIG_DIR / "config.toml"
DEFAULT_DB_PATH = CONFIG_DIR / "kcuchart.db"


class ChartSettings(BaseModel):
    """Tunables for one chart instance."""

    timezone: str = Field(default="America/New_York", description="Session timezone")
    ema_periods: tuple[int, ...] = Field(default=(8, 21), description="EMA periods")
    sma_period: Optional[int] = Field(default=200, ge=1, description="SMA period")
    ribbon_periods: tuple[int, ...] = Field(
        default=EMA_RIBBON_PERIODS, description="EMA ribbon periods, empty to disable"
    )
    vwap_bands: bool = Field(default=False, description="Draw VWAP 1 and 2 sigma bands")
    level_capacity: int = Field(default=20, ge=0, description="Regular level slots")
    gamma_capacity: int = Field(default=5, ge=0, description="Gamma level slots")
    visible_bars: int = Field(default=200, ge=1, description="Bars shown after a load")
    near_threshold: float = Field(
        default=0.01, gt=0, description="Gamma proximity band as a fraction of price"
    )
    anchor_years: int = Field(default=10, ge=1, description="Level line anchor span")
    db_path: Path = Field(default=DEFAULT_DB_PATH, description="SQLite database file")

    model_config = {"frozen": True}

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @field_validator("ema_periods", "ribbon_periods")
    @classmethod
    def _positive_periods(cls, value: tuple[int, ...]) -> tuple[int, ...]:
        if any(p < 1 for p in value):
            raise ValueError("EMA periods must be positive")
        return value

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Any:
        return Path(value).expanduser() if isinstance(value, str) else value


def _read_config(config_path: Path) -> Optional[dict]:
    if not config_path.exists():
        return None
    try:
        return toml.load(config_path)
    except (toml.TomlDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return None


def load_settings(config_path: Optional[Path] = None) -> ChartSettings:
    """Load settings from the config file, falling back to defaults.

    Args:
        config_path: Optional path to a TOML file.

    Returns:
        ChartSettings. A missing or unparsable file gives the defaults;
        invalid values raise pydantic.ValidationError.
    """
    config = _read_config(config_path or DEFAULT_CONFIG_PATH)
    if not config:
        return ChartSettings()

    values = dict(config.get("chart", {}))
    db_path = config.get("database", {}).get("path")
    if db_path:
        values["db_path"] = db_path
    return ChartSettings(**values)
