"""
ImageFormat - Source/output format detected once after decode.
"""

from enum import Enum
from typing import Optional


class ImageFormat(Enum):
    """Formats the compression stage dispatches on."""

    PNG = 'PNG'
    JPEG = 'JPEG'
    WEBP = 'WEBP'
    OTHER = 'OTHER'

    @classmethod
    def from_pil(cls, name: Optional[str]) -> 'ImageFormat':
        """Map a Pillow ``Image.format`` name to an ImageFormat."""
        if not name:
            return cls.OTHER
        name = name.upper()
        if name == 'MPO':
            # Multi-picture JPEG from phone cameras
            return cls.JPEG
        try:
            return cls(name)
        except ValueError:
            return cls.OTHER

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES.get(self, 'image/jpeg')

    @property
    def extension(self) -> str:
        return _EXTENSIONS.get(self, '.jpg')


_CONTENT_TYPES = {
    ImageFormat.PNG: 'image/png',
    ImageFormat.JPEG: 'image/jpeg',
    ImageFormat.WEBP: 'image/webp',
}

_EXTENSIONS = {
    ImageFormat.PNG: '.png',
    ImageFormat.JPEG: '.jpg',
    ImageFormat.WEBP: '.webp',
}
