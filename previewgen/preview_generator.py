"""
PreviewGenerator - Turns an uploaded image into a size-bounded preview.
"""

import logging
from typing import Optional

from .compression import PreviewCompressor, PreviewResult
from .config import PreviewConfig
from .errors import CacheBuildError, PreviewError
from .resize import normalize
from .watermark import get_watermark_tile


class PreviewGenerator:
    """
    Runs the resize and compression stages for a single upload.

    Per-image failures are reported as a missing preview (None) so a batch of
    uploads can skip the file and continue. Only a broken watermark tile
    propagates, since no preview can be watermarked in that case.
    """

    def __init__(
        self,
        config: Optional[PreviewConfig] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize preview generator.

        Args:
            config: Preview configuration (defaults if omitted)
            logger: Optional logger instance
        """
        self.config = config or PreviewConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.compressor = PreviewCompressor(self.config, self.logger)

    def generate(
        self,
        image_data: bytes,
        apply_watermark: bool = True
    ) -> Optional[PreviewResult]:
        """
        Generate a preview from image data.

        Args:
            image_data: Original image as bytes
            apply_watermark: False for clean gallery previews

        Returns:
            PreviewResult, or None if no preview can be made for this image

        Raises:
            CacheBuildError: If the watermark tile cannot be rendered
        """
        if apply_watermark:
            # Fail fast on a broken tile before spending time on the image
            get_watermark_tile(
                self.config.tile_size,
                self.config.watermark_text,
                self.config.watermark_opacity,
            )

        try:
            normalized = normalize(image_data, self.config)
            result = self.compressor.produce(
                normalized.data,
                normalized.width,
                normalized.height,
                normalized.original_format,
                apply_watermark=apply_watermark,
            )
        except CacheBuildError:
            raise
        except PreviewError as e:
            self.logger.error(f"Preview unavailable: {e}")
            return None
        except (OSError, ValueError) as e:
            self.logger.error(f"Error encoding preview: {e}")
            return None

        self.logger.debug(
            f"Generated {result.format.value} preview {result.width}x{result.height} "
            f"({result.size} bytes, watermark={'on' if apply_watermark else 'off'})"
        )
        return result


def generate_preview(
    image_data: bytes,
    apply_watermark: bool = True,
    config: Optional[PreviewConfig] = None
) -> Optional[PreviewResult]:
    """Generate a preview with a default PreviewGenerator."""
    return PreviewGenerator(config).generate(image_data, apply_watermark)
