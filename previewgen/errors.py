"""
Exceptions raised by the preview pipeline.
"""


class PreviewError(Exception):
    """Base class for preview generation failures."""


class DecodeError(PreviewError):
    """Input bytes are not a recognizable raster image."""


class ImageTooLargeError(DecodeError):
    """Input declares more pixels than the configured decode limit."""


class DimensionError(PreviewError):
    """Dimensions could not be determined after processing."""


class CacheBuildError(PreviewError):
    """
    The watermark tile could not be rendered.

    Raised on first use only and never converted into a missing preview:
    it means the brand mark configuration is broken for the whole process.
    """
