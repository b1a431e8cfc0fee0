"""Price level data models."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

LineStyle = Literal["solid", "dashed", "dotted"]

LevelKind = Literal["support", "resistance", "vwap", "ema", "pivot", "custom"]

GammaKind = Literal["call_wall", "put_wall", "zero_gamma", "max_pain", "gamma_flip"]


class PriceLevel(BaseModel):
    """A horizontal support/resistance style level from the analysis service."""

    price: float = Field(..., description="Level price")
    label: str = Field(default="", description="Axis label")
    kind: LevelKind = Field(default="custom", description="Level type")
    color: Optional[str] = Field(default=None, description="Explicit color override")
    line_style: Optional[LineStyle] = Field(default=None, description="Explicit line style")
    line_width: Optional[int] = Field(
        default=None, ge=1, le=4, description="Explicit line width"
    )
    strength: Optional[float] = Field(
        default=None, ge=0, le=100, description="Level strength (0-100)"
    )

    model_config = {"frozen": True}


class GammaLevel(BaseModel):
    """An options-derived level (call wall, put wall, zero gamma, max pain)."""

    price: float = Field(..., description="Level price")
    kind: GammaKind = Field(..., description="Gamma level type")
    label: Optional[str] = Field(default=None, description="Axis label")
    strength: Optional[float] = Field(
        default=None, ge=0, le=100, description="Level strength (0-100)"
    )
    color: Optional[str] = Field(default=None, description="Explicit color override")

    model_config = {"frozen": True}

    @property
    def display_label(self) -> str:
        """Label shown on the axis, derived from the kind when not given."""
        return self.label or self.kind.replace("_", " ").upper()


class RenderedLevel(BaseModel):
    """A styled level as placed into a pool slot."""

    key: str = Field(..., description="Stable identity (kind, price, label)")
    price: float
    label: str
    kind: str
    color: str
    line_width: int = Field(..., ge=1, le=4)
    line_style: LineStyle
    start_time: int = Field(..., description="Far-past anchor, epoch seconds")
    end_time: int = Field(..., description="Far-future anchor, epoch seconds")
    is_gamma: bool = False
    near: bool = Field(default=False, description="Within the proximity band of price")

    model_config = {"frozen": True}
