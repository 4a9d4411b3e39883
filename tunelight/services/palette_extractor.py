"""Album artwork palette extraction."""

from io import BytesIO
from typing import Protocol

import httpx
from PIL import Image, UnidentifiedImageError

from tunelight.cache import LatestValueCache, SingleFlight
from tunelight.exceptions import ImageLoadException
from tunelight.logging_config import get_logger, log_with_context
from tunelight.models import Palette, PaletteResult, Swatch

logger = get_logger(__name__)

SAMPLE_SIZE = (64, 64)

LOAD_FAILED = "Failed to load album art for color extraction."
NO_COLORS = "Could not extract colors."


class ImageLoader(Protocol):
    """Fetches and decodes an image, raising ImageLoadException on failure."""

    async def load(self, url: str) -> Image.Image: ...


class HttpImageLoader:
    """Loads artwork over the shared HTTP client and decodes it with Pillow."""

    def __init__(self, client: httpx.AsyncClient, timeout: float = 10.0):
        self._client = client
        self._timeout = timeout

    async def load(self, url: str) -> Image.Image:
        try:
            response = await self._client.get(url, timeout=self._timeout)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ImageLoadException(
                f"Failed to load album art: HTTP {e.response.status_code}",
                details={"artwork_url": url, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise ImageLoadException(
                f"Failed to load album art: {str(e) or type(e).__name__}",
                details={"artwork_url": url},
            ) from e

        try:
            image = Image.open(BytesIO(response.content))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise ImageLoadException(
                f"Album art is not a readable image: {e}",
                details={"artwork_url": url},
            ) from e
        return image


def extract_swatches(image: Image.Image, count: int = 6) -> list[Swatch]:
    """Median-cut quantize a thumbnail and order colours by pixel population.

    Fully transparent pixels are ignored. Returns an empty list when nothing
    opaque is left to sample.
    """
    rgba = image.convert("RGBA")
    rgba.thumbnail(SAMPLE_SIZE)
    alpha = rgba.getchannel("A")
    if alpha.getextrema()[1] == 0:
        return []

    # Composite onto black so transparent areas can be masked out of the counts.
    rgb = Image.new("RGB", rgba.size)
    rgb.paste(rgba, mask=alpha)
    quantized = rgb.quantize(colors=max(1, count), method=Image.Quantize.MEDIANCUT)

    palette = quantized.getpalette() or []
    counts: dict[int, int] = {}
    # P mode and L mode are both one byte per pixel
    for index, a in zip(quantized.tobytes(), alpha.tobytes()):
        if a:
            counts[index] = counts.get(index, 0) + 1

    total = sum(counts.values())
    swatches = []
    for index, pixels in sorted(counts.items(), key=lambda item: (-item[1], item[0])):
        base = index * 3
        if base + 2 >= len(palette):
            continue
        swatches.append(
            Swatch(
                red=palette[base],
                green=palette[base + 1],
                blue=palette[base + 2],
                area=pixels / total,
            )
        )
    return swatches[:count]


class PaletteExtractor:
    """Derives the palette for the current artwork.

    Concurrent calls for the same URL share one fetch. Only the most recent
    successful palette is kept; a repeated call for its URL returns that very
    object without fetching. Failures come back as an unavailable result,
    never as an exception.
    """

    def __init__(self, loader: ImageLoader, palette_size: int = 6):
        self._loader = loader
        self._palette_size = palette_size
        self._flights: SingleFlight[str, PaletteResult] = SingleFlight()
        self._cache: LatestValueCache[str, Palette] = LatestValueCache()

    def cached(self) -> Palette | None:
        """The palette currently on display, if any."""
        return self._cache.current()

    def invalidate(self) -> None:
        self._cache.clear()

    async def extract(self, artwork_url: str) -> PaletteResult:
        cached = self._cache.get(artwork_url)
        if cached is not None:
            return PaletteResult(artwork_url=artwork_url, palette=cached)
        return await self._flights.do(artwork_url, lambda: self._extract(artwork_url))

    async def _extract(self, artwork_url: str) -> PaletteResult:
        try:
            image = await self._loader.load(artwork_url)
        except ImageLoadException as e:
            log_with_context(
                logger,
                "warning",
                "Failed to load album art for color extraction",
                artwork_url=artwork_url,
                error=e.message,
                event_type="palette_load_failed",
            )
            return PaletteResult(artwork_url=artwork_url, reason=LOAD_FAILED)

        swatches = extract_swatches(image, self._palette_size)
        if not swatches:
            log_with_context(
                logger,
                "warning",
                "Could not extract colors",
                artwork_url=artwork_url,
                event_type="palette_empty",
            )
            return PaletteResult(artwork_url=artwork_url, reason=NO_COLORS)

        palette = Palette(artwork_url=artwork_url, swatches=swatches)
        self._cache.set(artwork_url, palette)
        log_with_context(
            logger,
            "info",
            "Palette extracted",
            artwork_url=artwork_url,
            swatch_count=len(swatches),
            primary=swatches[0].hex,
            event_type="palette_extracted",
        )
        return PaletteResult(artwork_url=artwork_url, palette=palette)
