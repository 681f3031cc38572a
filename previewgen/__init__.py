"""
Preview generation package for stock-image uploads.

Each upload gets a size-bounded preview:
    1. Resize/orient: decode, apply EXIF rotation, bound the width
    2. Compress: stamp the cached watermark tile, then walk a quality/format
       ladder until the preview fits the byte budget

Previews and originals can be stored in S3 or on the local filesystem.

Importing the package enables Pillow's LOAD_TRUNCATED_IMAGES for the whole
process so partially uploaded files still get a preview.
"""

__version__ = "1.0.0"

from .errors import PreviewError, DecodeError, ImageTooLargeError, DimensionError, CacheBuildError
from .image_format import ImageFormat
from .config import PreviewConfig, S3Config, LocalConfig
from .watermark import get_watermark_tile
from .resize import NormalizedImage, normalize
from .compression import PreviewCompressor, PreviewResult, quality_ladder
from .preview_generator import PreviewGenerator, generate_preview
from .s3_client import S3Client
from .local_client import LocalClient
from .upload_stats import UploadStats
from .upload_progress import UploadProgress
from .uploader import Uploader, UploadFile, UploadResult

__all__ = [
    "PreviewError",
    "DecodeError",
    "ImageTooLargeError",
    "DimensionError",
    "CacheBuildError",
    "ImageFormat",
    "PreviewConfig",
    "S3Config",
    "LocalConfig",
    "get_watermark_tile",
    "NormalizedImage",
    "normalize",
    "PreviewCompressor",
    "PreviewResult",
    "quality_ladder",
    "PreviewGenerator",
    "generate_preview",
    "S3Client",
    "LocalClient",
    "UploadStats",
    "UploadProgress",
    "Uploader",
    "UploadFile",
    "UploadResult",
]
