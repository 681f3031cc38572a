"""
Watermark tile provider.

The tile is a small transparent PNG with the brand mark drawn diagonally at
low opacity. It is rendered once per process (per tile configuration) and
reused for every preview, tiled across large images or stretched over small
ones by the compression stage.
"""

import io
import logging
from functools import lru_cache

from PIL import Image, ImageDraw, ImageFont

from .errors import CacheBuildError

TILE_SIZE = 400
WATERMARK_TEXT = 'KlickStock'
WATERMARK_OPACITY = 0.25

# Font size relative to the tile side (32px on a 400px tile)
FONT_SCALE = 0.08

logger = logging.getLogger(__name__)


@lru_cache(maxsize=8)
def get_watermark_tile(
    size: int = TILE_SIZE,
    text: str = WATERMARK_TEXT,
    opacity: float = WATERMARK_OPACITY,
) -> bytes:
    """
    Return the PNG-encoded watermark tile, rendering it on first use.

    Args:
        size: Side length of the square tile in pixels
        text: Brand mark drawn on the tile
        opacity: Alpha of the mark (0.0-1.0)

    Returns:
        PNG bytes. Later calls with the same arguments return the same object.

    Raises:
        CacheBuildError: If the tile cannot be rendered
    """
    try:
        tile = _render_tile(size, text, opacity)
        output = io.BytesIO()
        tile.save(output, format='PNG', optimize=True)
    except (ImportError, OSError, ValueError, TypeError) as e:
        raise CacheBuildError(f"Failed to render watermark tile: {e}") from e

    data = output.getvalue()
    logger.debug(f"Rendered {size}x{size} watermark tile ({len(data)} bytes)")
    return data


def load_watermark_tile(
    size: int = TILE_SIZE,
    text: str = WATERMARK_TEXT,
    opacity: float = WATERMARK_OPACITY,
) -> Image.Image:
    """Decode the cached tile into an RGBA image ready for compositing."""
    tile = Image.open(io.BytesIO(get_watermark_tile(size, text, opacity)))
    return tile.convert('RGBA')


def _render_tile(size: int, text: str, opacity: float) -> Image.Image:
    if size < 1:
        raise ValueError(f"tile size must be positive (got {size})")
    if not text:
        raise ValueError("watermark text is empty")
    if not 0 < opacity <= 1:
        raise ValueError(f"opacity must be in (0, 1] (got {opacity})")

    alpha = round(255 * opacity)
    font_size = max(1, round(size * FONT_SCALE))
    # Outline font so the mark scales cleanly with the tile
    font = ImageFont.load_default(size=font_size)

    tile = Image.new('RGBA', (size, size), (255, 255, 255, 0))
    draw = ImageDraw.Draw(tile)
    stroke = max(1, font_size // 16)
    draw.text(
        (size / 2, size / 2),
        text,
        font=font,
        fill=(255, 255, 255, alpha),
        anchor='mm',
        stroke_width=stroke,
        stroke_fill=(255, 255, 255, alpha),
    )

    # Counter-clockwise 45 degrees about the centre gives the diagonal mark
    return tile.rotate(45, resample=Image.Resampling.BICUBIC)
