"""Pydantic models for album artwork palettes."""

from pydantic import BaseModel, Field, computed_field


class Swatch(BaseModel):
    """One extracted colour."""

    red: int = Field(ge=0, le=255)
    green: int = Field(ge=0, le=255)
    blue: int = Field(ge=0, le=255)
    area: float = Field(default=0.0, ge=0.0, le=1.0, description="Share of sampled pixels")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def hex(self) -> str:
        return f"#{self.red:02x}{self.green:02x}{self.blue:02x}"

    @property
    def rgb(self) -> list[int]:
        return [self.red, self.green, self.blue]


class Palette(BaseModel):
    """Swatches ordered by dominance, index 0 being the most dominant."""

    artwork_url: str
    swatches: list[Swatch]

    @property
    def primary(self) -> Swatch | None:
        return self.swatches[0] if self.swatches else None


class PaletteResult(BaseModel):
    """Outcome of a palette extraction.

    ``palette`` is None when the artwork could not be loaded or yielded no
    swatches; ``reason`` then explains why.
    """

    artwork_url: str
    palette: Palette | None = None
    reason: str | None = None

    @property
    def available(self) -> bool:
        return self.palette is not None
