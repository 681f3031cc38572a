"""
Resize/orient stage - decode, auto-rotate and bound the preview width.

Importing this module sets ``PIL.ImageFile.LOAD_TRUNCATED_IMAGES = True``,
which affects every Pillow user in the process.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, ImageFile, ImageOps

from .config import PreviewConfig
from .errors import DecodeError, DimensionError, ImageTooLargeError
from .image_format import ImageFormat

# Uploads are often slightly broken but still renderable
ImageFile.LOAD_TRUNCATED_IMAGES = True

# Pillow raises these for structurally broken or oversized files
DECODE_ERRORS = (OSError, ValueError, SyntaxError, EOFError, Image.DecompressionBombError)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedImage:
    """
    Upright, width-bounded raster ready for the compression stage.

    Attributes:
        data: Lossless PNG intermediate
        width: Width of the intermediate in pixels
        height: Height of the intermediate in pixels
        original_format: Format of the uploaded source
        has_alpha: True if the intermediate carries an alpha channel
    """
    data: bytes
    width: int
    height: int
    original_format: ImageFormat
    has_alpha: bool = False


def normalize(
    source_bytes: bytes,
    config: Optional[PreviewConfig] = None
) -> NormalizedImage:
    """
    Decode, orient and downscale an uploaded image.

    Truncated sources are decoded as far as their data goes. The lenient
    mode is a process-wide Pillow setting made when this module is imported.

    Args:
        source_bytes: Original image as bytes
        config: Preview configuration (defaults if omitted)

    Returns:
        NormalizedImage holding a lossless intermediate

    Raises:
        DecodeError: If the bytes are not a usable raster image
        ImageTooLargeError: If the source exceeds the pixel limit
        DimensionError: If the result dimensions cannot be read back
    """
    config = config or PreviewConfig()

    img, original_format = decode(source_bytes, config.max_input_pixels)
    source_size = img.size
    img = _convert_color_mode(img)
    img = fit_width(img, config.max_width)

    output = io.BytesIO()
    img.save(output, format='PNG', compress_level=1)
    data = output.getvalue()

    width, height = read_dimensions(data)
    logger.debug(
        f"Normalized {original_format.value} {source_size[0]}x{source_size[1]} "
        f"-> {width}x{height} ({img.mode})"
    )

    return NormalizedImage(
        data=data,
        width=width,
        height=height,
        original_format=original_format,
        has_alpha=img.mode == 'RGBA',
    )


def decode(source_bytes: bytes, max_pixels: int) -> Tuple[Image.Image, ImageFormat]:
    """
    Decode image bytes leniently and apply EXIF orientation.

    The pixel count is checked against ``max_pixels`` from the header before
    any pixel data is loaded.
    """
    if not source_bytes:
        raise DecodeError("Image data is empty")

    try:
        img = Image.open(io.BytesIO(source_bytes))
    except Image.DecompressionBombError as e:
        raise ImageTooLargeError(str(e)) from e
    except DECODE_ERRORS as e:
        raise DecodeError(f"Unrecognized image data: {e}") from e

    original_format = ImageFormat.from_pil(img.format)

    width, height = img.size
    if width * height > max_pixels:
        raise ImageTooLargeError(
            f"Image is {width}x{height} ({width * height:,} pixels), "
            f"limit is {max_pixels:,} pixels"
        )

    try:
        if getattr(img, 'is_animated', False):
            img.seek(0)
        img = ImageOps.exif_transpose(img)
        img.load()
    except Image.DecompressionBombError as e:
        raise ImageTooLargeError(str(e)) from e
    except DECODE_ERRORS as e:
        raise DecodeError(f"Failed to decode {original_format.value} image: {e}") from e

    return img, original_format


def fit_width(img: Image.Image, max_width: int) -> Image.Image:
    """Scale down to ``max_width`` preserving aspect ratio; never enlarges."""
    width, height = img.size
    if width <= max_width:
        return img

    new_height = max(1, round(height * max_width / width))
    return img.resize((max_width, new_height), Image.Resampling.LANCZOS, reducing_gap=3.0)


def read_dimensions(data: bytes) -> Tuple[int, int]:
    """
    Read width and height from an encoded image header.

    Raises:
        DimensionError: If the header cannot be read or reports no size
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
    except DECODE_ERRORS as e:
        raise DimensionError(f"Failed to read image dimensions: {e}") from e

    if not width or not height:
        raise DimensionError("Image reported zero width or height")
    return width, height


def _convert_color_mode(img: Image.Image) -> Image.Image:
    """Convert to RGBA when the source carries transparency, RGB otherwise."""
    if img.mode == 'RGBA':
        return img
    if img.mode in ('LA', 'PA', 'La', 'RGBa') or 'transparency' in img.info:
        return img.convert('RGBA')
    if img.mode != 'RGB':
        return img.convert('RGB')
    return img
