"""
Pytest fixtures for previewgen tests.
"""

import pytest
from PIL import Image

from previewgen.tests.images import make_noise, make_photo, to_bytes


@pytest.fixture
def sample_image_bytes():
    """Fixture providing sample JPEG image bytes."""
    img = Image.new('RGB', (100, 100), color='red')
    return to_bytes(img, 'JPEG')


@pytest.fixture
def sample_png_bytes():
    """Fixture providing sample PNG image bytes with transparency."""
    img = Image.new('RGBA', (100, 100), color=(255, 0, 0, 128))
    return to_bytes(img, 'PNG')


@pytest.fixture
def icon_png_bytes():
    """A 300x300 icon: opaque disc on a transparent background."""
    from PIL import ImageDraw

    img = Image.new('RGBA', (300, 300), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.ellipse((50, 50, 250, 250), fill=(30, 120, 200, 255))
    return to_bytes(img, 'PNG')


@pytest.fixture
def large_photo_bytes():
    """A 4000x3000 photographic JPEG."""
    return to_bytes(make_photo(4000, 3000), 'JPEG', quality=90)


@pytest.fixture
def photo_bytes():
    """An 800x600 photographic JPEG."""
    return to_bytes(make_photo(800, 600), 'JPEG', quality=95)


@pytest.fixture
def noise_bytes():
    """An 800x600 high-entropy PNG."""
    return to_bytes(make_noise(800, 600), 'PNG')


@pytest.fixture
def logger():
    """Fixture providing a logger."""
    import logging
    return logging.getLogger('test')
