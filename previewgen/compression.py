"""
Compression/budget stage - watermark the resized raster, then re-encode it
down a quality/format ladder until it fits the byte budget.
"""

import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from PIL import Image, ImageOps

from .config import PreviewConfig
from .errors import DecodeError, DimensionError
from .image_format import ImageFormat
from .resize import DECODE_ERRORS, fit_width, read_dimensions
from .watermark import load_watermark_tile


@dataclass(frozen=True)
class CompressionAttempt:
    """A single encode tried during the budget search."""
    format: ImageFormat
    quality: Optional[int]
    width: int
    height: int
    size: int


@dataclass(frozen=True)
class PreviewResult:
    """
    Final preview produced by the compression stage.

    Attributes:
        data: Encoded preview bytes
        width: Width read back from the encoded header
        height: Height read back from the encoded header
        format: JPEG, PNG or WEBP
    """
    data: bytes
    width: int
    height: int
    format: ImageFormat

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def content_type(self) -> str:
        return self.format.content_type

    @property
    def extension(self) -> str:
        return self.format.extension


def quality_ladder(config: PreviewConfig) -> List[int]:
    """
    JPEG qualities to try, highest first.

    Steps are coarse above the midpoint and fine at or below it; the floor is
    always the last entry.
    """
    qualities = []
    quality = config.jpeg_quality_start
    while quality > config.jpeg_quality_floor:
        qualities.append(quality)
        if quality > config.jpeg_quality_midpoint:
            quality -= config.jpeg_coarse_step
        else:
            quality -= config.jpeg_fine_step
    qualities.append(config.jpeg_quality_floor)
    return qualities


class PreviewCompressor:
    """
    Applies the watermark and searches for an encoding within the byte budget.

    Size is a soft target: when every rung of the ladder misses the budget the
    last attempt is returned anyway.
    """

    def __init__(
        self,
        config: Optional[PreviewConfig] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize compressor.

        Args:
            config: Preview configuration (defaults if omitted)
            logger: Optional logger instance
        """
        self.config = config or PreviewConfig()
        self.logger = logger or logging.getLogger(__name__)

    def produce(
        self,
        resized_bytes: bytes,
        width: int,
        height: int,
        original_format: ImageFormat,
        apply_watermark: bool = True
    ) -> PreviewResult:
        """
        Produce the final preview from the resize stage output.

        Args:
            resized_bytes: Lossless intermediate from ``normalize``
            width: Width of the intermediate
            height: Height of the intermediate
            original_format: Format of the uploaded source
            apply_watermark: Composite the brand tile before encoding

        Returns:
            PreviewResult with dimensions read back from the encoded bytes
        """
        img = self.prepare(resized_bytes, width, height, apply_watermark)

        if original_format is ImageFormat.PNG:
            data, output_format = self._compress_png(img)
        else:
            data, output_format = self._compress_lossy(img)

        final_width, final_height = read_dimensions(data)
        return PreviewResult(
            data=data,
            width=final_width,
            height=final_height,
            format=output_format,
        )

    def prepare(
        self,
        resized_bytes: bytes,
        width: int,
        height: int,
        apply_watermark: bool = True
    ) -> Image.Image:
        """Decode the intermediate and composite the watermark if requested."""
        try:
            img = Image.open(io.BytesIO(resized_bytes))
            img.load()
        except DECODE_ERRORS as e:
            raise DecodeError(f"Failed to decode resized image: {e}") from e

        if img.size != (width, height):
            raise DimensionError(
                f"Resized image is {img.size[0]}x{img.size[1]}, expected {width}x{height}"
            )

        if apply_watermark:
            img = self.apply_watermark(img)
        return img

    def apply_watermark(self, img: Image.Image) -> Image.Image:
        """
        Composite the cached tile over the image.

        Images at least one tile wide and tall get the tile repeated across
        the whole canvas; smaller images get a single tile fitted to their size.
        """
        tile = load_watermark_tile(
            self.config.tile_size,
            self.config.watermark_text,
            self.config.watermark_opacity,
        )
        width, height = img.size

        if width >= tile.width and height >= tile.height:
            overlay = Image.new('RGBA', img.size, (0, 0, 0, 0))
            for top in range(0, height, tile.height):
                for left in range(0, width, tile.width):
                    overlay.paste(tile, (left, top))
        else:
            overlay = ImageOps.fit(tile, img.size, Image.Resampling.LANCZOS)

        mode = img.mode
        composited = Image.alpha_composite(img.convert('RGBA'), overlay)
        if mode == 'RGBA':
            return composited
        return composited.convert('RGB')

    def _compress_png(self, img: Image.Image) -> Tuple[bytes, ImageFormat]:
        """Palette PNG, then a smaller palette PNG, then WebP as a last resort."""
        budget = self.config.max_bytes
        attempts: List[CompressionAttempt] = []

        data = self._attempt(img, ImageFormat.PNG, attempts, colors=self.config.png_palette_colors)
        if len(data) <= budget:
            return data, ImageFormat.PNG

        smaller = self._downsize(img)
        data = self._attempt(smaller, ImageFormat.PNG, attempts, colors=self.config.png_fallback_colors)
        if len(data) <= budget:
            return data, ImageFormat.PNG

        # WebP keeps the alpha channel that a JPEG fallback would drop
        data = self._attempt(smaller, ImageFormat.WEBP, attempts, quality=self.config.webp_quality)
        self._log_last_resort(attempts)
        return data, ImageFormat.WEBP

    def _compress_lossy(self, img: Image.Image) -> Tuple[bytes, ImageFormat]:
        """JPEG quality ladder, then a downsized JPEG, then WebP."""
        budget = self.config.max_bytes
        attempts: List[CompressionAttempt] = []

        for quality in quality_ladder(self.config):
            data = self._attempt(img, ImageFormat.JPEG, attempts, quality=quality)
            if len(data) <= budget:
                return data, ImageFormat.JPEG

        smaller = self._downsize(img)
        data = self._attempt(smaller, ImageFormat.JPEG, attempts, quality=self.config.fallback_jpeg_quality)
        if len(data) <= budget:
            return data, ImageFormat.JPEG

        data = self._attempt(smaller, ImageFormat.WEBP, attempts, quality=self.config.webp_quality)
        self._log_last_resort(attempts)
        return data, ImageFormat.WEBP

    def _downsize(self, img: Image.Image) -> Image.Image:
        new_width = max(1, int(img.width * self.config.fallback_scale))
        return fit_width(img, new_width)

    def _attempt(
        self,
        img: Image.Image,
        output_format: ImageFormat,
        attempts: List[CompressionAttempt],
        quality: Optional[int] = None,
        colors: Optional[int] = None
    ) -> bytes:
        data = encode(img, output_format, quality=quality, colors=colors)
        attempt = CompressionAttempt(
            format=output_format,
            quality=quality if quality is not None else colors,
            width=img.width,
            height=img.height,
            size=len(data),
        )
        attempts.append(attempt)
        self.logger.debug(
            f"Attempt {len(attempts)}: {output_format.value} "
            f"q={attempt.quality} {attempt.width}x{attempt.height} -> {attempt.size} bytes"
        )
        return data

    def _log_last_resort(self, attempts: List[CompressionAttempt]) -> None:
        final = attempts[-1]
        if final.size <= self.config.max_bytes:
            return
        self.logger.warning(
            f"Preview exceeds budget after {len(attempts)} attempts: "
            f"{final.size} > {self.config.max_bytes} bytes "
            f"({final.format.value} {final.width}x{final.height})"
        )


def encode(
    img: Image.Image,
    output_format: ImageFormat,
    quality: Optional[int] = None,
    colors: Optional[int] = None
) -> bytes:
    """
    Encode an RGB/RGBA image.

    Args:
        img: Image to encode
        output_format: JPEG, PNG or WEBP
        quality: Lossy quality (JPEG/WEBP)
        colors: Palette size for PNG quantization (None keeps full colour)

    Returns:
        Encoded bytes
    """
    output = io.BytesIO()

    if output_format is ImageFormat.JPEG:
        _flatten_alpha(img).save(
            output, format='JPEG', quality=quality or 85, optimize=True, progressive=True
        )
    elif output_format is ImageFormat.PNG:
        if colors:
            img = img.quantize(colors=colors, method=Image.Quantize.FASTOCTREE)
        img.save(output, format='PNG', optimize=True, compress_level=9)
    elif output_format is ImageFormat.WEBP:
        img.save(output, format='WEBP', quality=quality or 80, method=6)
    else:
        raise ValueError(f"Cannot encode previews as {output_format.value}")

    return output.getvalue()


def _flatten_alpha(img: Image.Image) -> Image.Image:
    """Composite transparency onto white for formats without alpha."""
    if img.mode == 'RGBA':
        background = Image.new('RGB', img.size, (255, 255, 255))
        background.paste(img, mask=img.split()[-1])
        return background
    if img.mode != 'RGB':
        return img.convert('RGB')
    return img
