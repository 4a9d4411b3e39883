"""Spectrum frame and rendered bar models."""

from dataclasses import dataclass

from pydantic import BaseModel


@dataclass(frozen=True)
class SpectrumFrame:
    """Byte magnitudes (0-255), one per frequency bin, for a single tick."""

    magnitudes: bytes

    def __len__(self) -> int:
        return len(self.magnitudes)

    @property
    def bass(self) -> int:
        """Mean magnitude over the lowest eighth of the bins (0-255)."""
        bass_bins = self.magnitudes[: len(self.magnitudes) // 8]
        if not bass_bins:
            return 0
        return round(sum(bass_bins) / len(bass_bins))

    def led_levels(self, led_count: int) -> list[int]:
        """Average bins into ``led_count`` groups, as 0-100 brightness percentages.

        Returns an empty list when there are fewer bins than LEDs.
        """
        if led_count <= 0 or len(self.magnitudes) < led_count:
            return []
        per_led = len(self.magnitudes) // led_count
        levels = []
        for j in range(led_count):
            group = self.magnitudes[j * per_led : (j + 1) * per_led]
            levels.append(round(sum(group) / per_led / 255 * 100))
        return levels


class Bar(BaseModel):
    """One rendered spectrum bar in canvas coordinates."""

    x: float
    y: float
    width: float
    height: float
    color: str


class SpectrumSnapshot(BaseModel):
    """What the spectrum canvas currently shows."""

    state: str
    width: int
    height: int
    frame_count: int
    bars: list[Bar]
    bass: int = 0
