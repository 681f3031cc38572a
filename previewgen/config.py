"""
Configuration for preview generation and the storage collaborators.
"""

import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass
class PreviewConfig:
    """
    Tunables for the preview pipeline.

    Attributes:
        max_width: Maximum preview width in pixels (never upscaled)
        max_bytes: Byte budget the compression ladder tries to meet
        tile_size: Side length of the square watermark tile
        jpeg_quality_start: First JPEG quality tried
        jpeg_quality_floor: Lowest JPEG quality tried before resizing
        jpeg_quality_midpoint: Quality at which the ladder switches to fine steps
        jpeg_coarse_step: Quality step while above the midpoint
        jpeg_fine_step: Quality step at or below the midpoint
        png_palette_colors: Palette size for the first PNG encode
        png_fallback_colors: Palette size for the downsized PNG encode
        fallback_scale: Width factor for the downsize pass
        fallback_jpeg_quality: JPEG quality used after the downsize pass
        webp_quality: WebP quality used for the last resort
        max_input_pixels: Decode limit, larger sources are rejected
        watermark_text: Brand mark rendered into the tile
        watermark_opacity: Alpha of the brand mark (0.0-1.0)
    """
    max_width: int = 1600
    max_bytes: int = 60 * 1024
    tile_size: int = 400
    jpeg_quality_start: int = 85
    jpeg_quality_floor: int = 20
    jpeg_quality_midpoint: int = 60
    jpeg_coarse_step: int = 10
    jpeg_fine_step: int = 5
    png_palette_colors: int = 256
    png_fallback_colors: int = 64
    fallback_scale: float = 0.75
    fallback_jpeg_quality: int = 30
    webp_quality: int = 40
    max_input_pixels: int = 50_000_000
    watermark_text: str = 'KlickStock'
    watermark_opacity: float = 0.25

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if self.max_width < 1:
            errors.append("max_width must be positive")
        if self.max_bytes < 1:
            errors.append("max_bytes must be positive")
        if self.tile_size < 1:
            errors.append("tile_size must be positive")
        for name in ('jpeg_quality_start', 'jpeg_quality_floor',
                     'fallback_jpeg_quality', 'webp_quality'):
            value = getattr(self, name)
            if not 1 <= value <= 100:
                errors.append(f"{name} must be between 1 and 100 (got {value})")
        if self.jpeg_quality_floor > self.jpeg_quality_start:
            errors.append("jpeg_quality_floor must not exceed jpeg_quality_start")
        if self.jpeg_coarse_step < 1 or self.jpeg_fine_step < 1:
            errors.append("JPEG quality steps must be positive")
        for name in ('png_palette_colors', 'png_fallback_colors'):
            value = getattr(self, name)
            if not 2 <= value <= 256:
                errors.append(f"{name} must be between 2 and 256 (got {value})")
        if not 0 < self.fallback_scale < 1:
            errors.append("fallback_scale must be between 0 and 1")
        if self.max_input_pixels < 1:
            errors.append("max_input_pixels must be positive")
        if not self.watermark_text:
            errors.append("watermark_text is required")
        if not 0 < self.watermark_opacity <= 1:
            errors.append("watermark_opacity must be in (0, 1]")

        return errors


@dataclass
class S3Config:
    """
    S3 connection settings for upload storage.

    Attributes:
        endpoint: S3 endpoint URL (None for AWS)
        bucket: Bucket name
        prefix: Key prefix for all uploads
        access_key: Access key ID
        secret_key: Secret access key
        region: Region name
        verify_ssl: Verify TLS certificates
        url_expiry: Presigned URL lifetime in seconds
    """
    endpoint: Optional[str] = None
    bucket: str = ''
    prefix: str = 'uploads'
    access_key: str = ''
    secret_key: str = ''
    region: str = 'us-east-1'
    verify_ssl: bool = True
    url_expiry: int = 3600

    @classmethod
    def from_env(cls) -> 'S3Config':
        """Create configuration from S3_* environment variables."""
        return cls(
            endpoint=os.getenv('S3_ENDPOINT') or None,
            bucket=os.getenv('S3_BUCKET', ''),
            prefix=os.getenv('S3_PREFIX', 'uploads'),
            access_key=os.getenv('S3_ACCESS_KEY', ''),
            secret_key=os.getenv('S3_SECRET_KEY', ''),
            region=os.getenv('S3_REGION', 'us-east-1'),
            verify_ssl=os.getenv('S3_VERIFY_SSL', 'true').lower() not in ('0', 'false', 'no'),
            url_expiry=int(os.getenv('S3_URL_EXPIRY', '3600')),
        )

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []
        if not self.bucket:
            errors.append("S3_BUCKET is required")
        if not self.access_key:
            errors.append("S3_ACCESS_KEY is required")
        if not self.secret_key:
            errors.append("S3_SECRET_KEY is required")
        if self.url_expiry < 1:
            errors.append("S3_URL_EXPIRY must be positive")
        return errors


@dataclass
class LocalConfig:
    """
    Local filesystem storage settings.

    Attributes:
        root_path: Directory that stands in for the bucket
        prefix: Key prefix within the root
    """
    root_path: str
    prefix: str = 'uploads'

    @property
    def base_path(self) -> str:
        return os.path.join(self.root_path, self.prefix) if self.prefix else self.root_path

    def validate(self) -> List[str]:
        errors = []
        if not self.root_path:
            errors.append("Local root path is required")
        elif not os.path.isdir(self.root_path):
            errors.append(f"Local root path does not exist: {self.root_path}")
        return errors
